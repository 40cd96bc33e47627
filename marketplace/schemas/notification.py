from pydantic import BaseModel
from typing import Optional
import uuid
from datetime import datetime

from marketplace.models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: uuid.UUID
    message: str
    type: NotificationType
    order_id: Optional[uuid.UUID] = None
    pickup_id: Optional[uuid.UUID] = None
    read: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_notification(cls, notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            message=notification.message,
            type=notification.type,
            order_id=notification.order_id,
            pickup_id=notification.pickup_id,
            read=notification.read,
            created_at=notification.created_at,
        )
