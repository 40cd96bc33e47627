from enum import Enum
from tortoise import fields, models
import uuid


class Product(models.Model):
    """Catalog entry. Orders copy name and price at placement time."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    # Grocery and pickup-store products have no restaurant
    restaurant = fields.ForeignKeyField("models.User", related_name="products", null=True)
    name = fields.CharField(max_length=255)
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    image_url = fields.CharField(max_length=512, null=True)
    is_available = fields.BooleanField(default=True)

    class Meta:
        table = "products"
        indexes = [
            ("restaurant_id",),
            ("restaurant_id", "is_available"),
        ]


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FLAT = "flat"


class Offer(models.Model):
    """Promo code definition, read during placement only."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    code = fields.CharField(max_length=64, unique=True)
    discount_type = fields.CharEnumField(DiscountType, default=DiscountType.PERCENTAGE)
    discount_value = fields.DecimalField(max_digits=12, decimal_places=2)
    max_discount = fields.DecimalField(max_digits=12, decimal_places=2, null=True)
    min_order_value = fields.DecimalField(max_digits=12, decimal_places=2, null=True)
    valid_from = fields.DatetimeField(null=True)
    valid_to = fields.DatetimeField(null=True)
    is_active = fields.BooleanField(default=True)

    class Meta:
        table = "offers"
