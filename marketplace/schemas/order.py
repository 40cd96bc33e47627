from pydantic import BaseModel, Field
from typing import List, Optional
import uuid
from datetime import datetime
from decimal import Decimal

from marketplace.domain.status import OrderStatus


class OrderItemRequest(BaseModel):
    """Schema for a single item in the order request."""
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)


class DeliveryAddress(BaseModel):
    """Address snapshot captured at placement time."""
    address: str = Field(..., min_length=1)
    landmark: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., min_length=1)


class OrderRequest(BaseModel):
    """Schema for the full order placement request body."""
    items: List[OrderItemRequest]
    delivery_address: DeliveryAddress
    payment_method: str
    offer_code: Optional[str] = None
    delivery_instructions: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    """Schema for updating an order status."""
    status: str = Field(..., min_length=1)
    note: Optional[str] = Field(None, max_length=500)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AssignPartnerRequest(BaseModel):
    delivery_partner_id: uuid.UUID


class RatingRequest(BaseModel):
    food: int = Field(..., ge=1, le=5)
    delivery: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)


class OrderItemResponse(BaseModel):
    """Schema for an item inside the detailed order response."""
    product_ref: uuid.UUID
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class TimelineEntryResponse(BaseModel):
    status: OrderStatus
    timestamp: datetime
    note: Optional[str] = None


class RatingResponse(BaseModel):
    food: int
    delivery: int
    review: Optional[str] = None
    rated_at: datetime


class CancellationResponse(BaseModel):
    reason: Optional[str] = None
    time: Optional[datetime] = None
    actor_id: Optional[uuid.UUID] = None
    actor_role: Optional[str] = None


class OrderDetailResponse(BaseModel):
    """Schema for fetching detailed order information."""
    id: uuid.UUID
    order_number: str
    status: OrderStatus
    customer_id: uuid.UUID
    restaurant_id: Optional[uuid.UUID] = None
    delivery_partner_id: Optional[uuid.UUID] = None
    subtotal: Decimal
    delivery_fee: Decimal
    tax_amount: Decimal
    discount: Decimal
    final_amount: Decimal
    applied_offer_code: Optional[str] = None
    payment_method: str
    payment_status: str
    delivery_address: dict
    delivery_instructions: Optional[str] = None
    items: List[OrderItemResponse] = []
    cancellation: Optional[CancellationResponse] = None
    rating: Optional[RatingResponse] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order, include_items: bool = True) -> "OrderDetailResponse":
        items = []
        if include_items:
            items = [
                OrderItemResponse(
                    product_ref=i.product_ref,
                    name=i.name,
                    quantity=i.quantity,
                    unit_price=i.unit_price,
                    line_total=i.line_total,
                )
                for i in order.items
            ]
        cancellation = None
        if order.cancellation_time:
            cancellation = CancellationResponse(
                reason=order.cancellation_reason,
                time=order.cancellation_time,
                actor_id=order.cancelled_by_user_id,
                actor_role=order.cancelled_by_role,
            )
        rating = None
        if order.rated_at:
            rating = RatingResponse(
                food=order.rating_food,
                delivery=order.rating_delivery,
                review=order.review,
                rated_at=order.rated_at,
            )
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            customer_id=order.customer_id,
            restaurant_id=order.restaurant_id,
            delivery_partner_id=order.delivery_partner_id,
            subtotal=order.subtotal,
            delivery_fee=order.delivery_fee,
            tax_amount=order.tax_amount,
            discount=order.discount,
            final_amount=order.final_amount,
            applied_offer_code=order.applied_offer_code,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            delivery_address=order.delivery_address,
            delivery_instructions=order.delivery_instructions,
            items=items,
            cancellation=cancellation,
            rating=rating,
            delivered_at=order.delivered_at,
            created_at=order.created_at,
        )


class OrderTrackResponse(BaseModel):
    order_id: uuid.UUID
    order_number: str
    status: OrderStatus
    timeline: List[TimelineEntryResponse]


class LocationResponse(BaseModel):
    order_id: uuid.UUID
    latitude: float
    longitude: float
    updated_at: Optional[datetime] = None


class LocationReport(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
