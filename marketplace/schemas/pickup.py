import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from marketplace.domain.pickup_machine import ItemCategory, PickupStatus


class PickupRequest(BaseModel):
    pickup_address: str = Field(..., min_length=1)
    drop_address: str = Field(..., min_length=1)
    item_category: str = Field(..., description="lunchbox, documents, clothes or others")
    note: Optional[str] = None


class PickupStatusUpdate(BaseModel):
    # Free text on purpose: the courier app sends labels like "Picked Up"
    status: str
    note: Optional[str] = Field(None, max_length=500)


class PickupAmountUpdate(BaseModel):
    total_amount: Decimal = Field(..., ge=0)


class PickupTimelineEntry(BaseModel):
    status: PickupStatus
    timestamp: datetime
    note: Optional[str] = None


class PickupResponse(BaseModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    delivery_partner_id: Optional[uuid.UUID] = None
    pickup_address: str
    drop_address: str
    item_category: ItemCategory
    note: Optional[str] = None
    status: PickupStatus
    status_note: Optional[str] = None
    cancel_reason: Optional[str] = None
    total_amount: Decimal
    created_at: Optional[datetime] = None
    timeline: Optional[List[PickupTimelineEntry]] = None

    @classmethod
    def from_pickup(cls, pickup, timeline=None) -> "PickupResponse":
        entries = None
        if timeline is not None:
            entries = [PickupTimelineEntry(status=e.status, timestamp=e.timestamp, note=e.note) for e in timeline]
        return cls(
            id=pickup.id,
            customer_id=pickup.customer_id,
            delivery_partner_id=pickup.delivery_partner_id,
            pickup_address=pickup.pickup_address,
            drop_address=pickup.drop_address,
            item_category=pickup.item_category,
            note=pickup.note,
            status=pickup.status,
            status_note=pickup.status_note,
            cancel_reason=pickup.cancel_reason,
            total_amount=pickup.total_amount,
            created_at=pickup.created_at,
            timeline=entries,
        )
