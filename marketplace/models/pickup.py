from tortoise import fields, models
import uuid

from marketplace.domain.pickup_machine import ItemCategory, PickupStatus


class PickupDrop(models.Model):
    """Courier-only task: move an item from one address to another."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    customer = fields.ForeignKeyField("models.User", related_name="pickups")
    delivery_partner = fields.ForeignKeyField("models.User", related_name="assigned_pickups", null=True)
    pickup_address = fields.TextField()
    drop_address = fields.TextField()
    item_category = fields.CharEnumField(ItemCategory)
    note = fields.TextField(null=True)
    status = fields.CharEnumField(PickupStatus, default=PickupStatus.PENDING, max_length=40)
    status_note = fields.TextField(null=True)
    cancel_reason = fields.TextField(null=True)
    total_amount = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "pickup_drops"
        indexes = [
            ("customer_id",),
            ("delivery_partner_id",),
            ("status",),
        ]


class PickupStatusEvent(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    pickup = fields.ForeignKeyField("models.PickupDrop", related_name="timeline")
    position = fields.IntField()
    status = fields.CharEnumField(PickupStatus, max_length=40)
    timestamp = fields.DatetimeField()
    note = fields.TextField(null=True)

    class Meta:
        table = "pickup_status_timeline"
        unique_together = (("pickup", "position"),)
        ordering = ["position"]
