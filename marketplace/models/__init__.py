# marketplace/models/__init__.py
from .user import User
from .catalog import Product, Offer, DiscountType
from .order import Order, OrderItem, OrderStatusEvent
from .pickup import PickupDrop, PickupStatusEvent
from .notification import Notification, NotificationType

# Export all models
__all__ = [
    "User",
    "Product",
    "Offer",
    "DiscountType",
    "Order",
    "OrderItem",
    "OrderStatusEvent",
    "PickupDrop",
    "PickupStatusEvent",
    "Notification",
    "NotificationType",
]
