from enum import Enum
from tortoise import fields, models
import uuid


class NotificationType(str, Enum):
    ORDER = "order"
    SYSTEM = "system"
    PROMO = "promo"
    SUPPORT = "support"
    DELIVERY = "delivery"


class Notification(models.Model):
    """
    Stored copy of an alert for one user. Written alongside the real-time
    publish so a client that was offline can read what it missed.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    user = fields.ForeignKeyField("models.User", related_name="notifications")
    message = fields.TextField()
    type = fields.CharEnumField(NotificationType, default=NotificationType.ORDER)
    # Plain references so the inbox outlives the order or pickup row
    order_id = fields.UUIDField(null=True)
    pickup_id = fields.UUIDField(null=True)
    read = fields.BooleanField(default=False)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "notifications"
        indexes = [
            ("user_id", "read"),
        ]
