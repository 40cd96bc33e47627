from tortoise import fields, models
import uuid

from marketplace.domain.status import OrderStatus


class Order(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order_number = fields.CharField(max_length=20, unique=True)
    customer = fields.ForeignKeyField("models.User", related_name="orders")
    restaurant = fields.ForeignKeyField("models.User", related_name="restaurant_orders", null=True)
    delivery_partner = fields.ForeignKeyField("models.User", related_name="delivery_orders", null=True)

    status = fields.CharEnumField(OrderStatus, default=OrderStatus.PLACED, max_length=40)

    # Financial breakdown, fixed at placement
    subtotal = fields.DecimalField(max_digits=14, decimal_places=2)
    delivery_fee = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax_amount = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    final_amount = fields.DecimalField(max_digits=14, decimal_places=2)
    applied_offer = fields.ForeignKeyField("models.Offer", related_name="orders", null=True)
    applied_offer_code = fields.CharField(max_length=64, null=True)

    delivery_address = fields.JSONField()
    delivery_instructions = fields.TextField(null=True)
    payment_method = fields.CharField(max_length=16)
    payment_status = fields.CharField(max_length=16, default="pending")
    transaction_id = fields.CharField(max_length=128, null=True)

    cancellation_reason = fields.TextField(null=True)
    cancellation_time = fields.DatetimeField(null=True)
    cancelled_by_user_id = fields.UUIDField(null=True)
    cancelled_by_role = fields.CharField(max_length=16, null=True)

    rating_food = fields.IntField(null=True)
    rating_delivery = fields.IntField(null=True)
    review = fields.TextField(null=True)
    rated_at = fields.DatetimeField(null=True)

    actual_delivery_time = fields.DatetimeField(null=True)
    delivered_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "orders"
        indexes = [
            ("customer_id",),            # Customer order history
            ("restaurant_id",),          # Restaurant order queries
            ("delivery_partner_id",),    # Assigned orders
            ("status",),                 # Status-based filtering
            ("created_at",),             # Time-based queries
            ("delivery_partner_id", "status"),  # Composite: in-flight orders of a partner
        ]


class OrderItem(models.Model):
    """Line snapshot; never rewritten after placement."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.Order", related_name="items")
    product_ref = fields.UUIDField()
    name = fields.CharField(max_length=255)
    unit_price = fields.DecimalField(max_digits=12, decimal_places=2)
    quantity = fields.IntField()
    line_total = fields.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        table = "order_items"
        indexes = [
            ("order_id",),
        ]


class OrderStatusEvent(models.Model):
    """Append-only status timeline. `position` starts at 1 per order."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.Order", related_name="timeline")
    position = fields.IntField()
    status = fields.CharEnumField(OrderStatus, max_length=40)
    timestamp = fields.DatetimeField()
    note = fields.TextField(null=True)

    class Meta:
        table = "order_status_timeline"
        unique_together = (("order", "position"),)
        ordering = ["position"]
