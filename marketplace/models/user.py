from tortoise import fields, models
import uuid

from marketplace.domain.actors import AccountStatus, Role


class User(models.Model):
    """
    Account holder for every role. The order lifecycle only reads the role and
    status; delivery partners additionally carry their last reported position.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    name = fields.CharField(max_length=255)
    phone = fields.CharField(max_length=20, null=True)
    email = fields.CharField(max_length=255, null=True)
    role = fields.CharEnumField(Role, default=Role.CUSTOMER)
    status = fields.CharEnumField(AccountStatus, default=AccountStatus.ACTIVE)
    is_approved = fields.BooleanField(default=True)
    # Opaque bearer credential issued by the auth service
    api_token = fields.CharField(max_length=128, unique=True)
    current_latitude = fields.FloatField(null=True)
    current_longitude = fields.FloatField(null=True)
    location_updated_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"
        indexes = [
            ("role",),
            ("role", "status"),  # Active delivery partners
        ]

    @property
    def has_location(self) -> bool:
        return self.current_latitude is not None and self.current_longitude is not None
