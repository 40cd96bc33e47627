import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from marketplace.core.errors import MarketplaceError
from marketplace.core.security import get_current_actor
from marketplace.domain.actors import Actor
from marketplace.domain.status import OrderStatus
from marketplace.realtime.notifier import OrderNotifier, get_notifier
from marketplace.schemas.response import SuccessResponse
from marketplace.schemas.order import (
    AssignPartnerRequest,
    CancelRequest,
    LocationResponse,
    OrderDetailResponse,
    OrderRequest,
    OrderStatusUpdate,
    OrderTrackResponse,
    RatingRequest,
    TimelineEntryResponse,
)
from marketplace.services.location_service import get_partner_location
from marketplace.services.order_service import (
    apply_transition,
    assign_delivery_partner,
    cancel_order,
    get_order,
    list_orders,
    place_order,
    rate_order,
    track_order,
)
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


def _detail(order, include_items: bool = False) -> dict:
    return OrderDetailResponse.from_order(order, include_items=include_items).model_dump(mode="json")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_order_endpoint(
    request_data: OrderRequest,
    actor: Actor = Depends(get_current_actor),
    notifier: OrderNotifier = Depends(get_notifier),
):
    """
    Places a new order for the calling customer. Totals are computed server side
    from the catalogue; the restaurant is told over its socket topic.
    """
    try:
        items_data = [
            {
                "product_id": str(item.product_id),
                "quantity": item.quantity
            }
            for item in request_data.items
        ]

        order = await place_order(
            actor,
            items=items_data,
            delivery_address=request_data.delivery_address.model_dump(),
            payment_method=request_data.payment_method,
            notifier=notifier,
            offer_code=request_data.offer_code,
            delivery_instructions=request_data.delivery_instructions,
        )
        await order.fetch_related("items")
        return SuccessResponse(data=_detail(order, include_items=True))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error placing order: {e}")
        raise HTTPException(status_code=500, detail="Server failed to place order.")


@router.get("/", response_model=SuccessResponse)
async def list_orders_endpoint(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    customer_id: Optional[UUID] = None,
    restaurant_id: Optional[UUID] = None,
    delivery_partner_id: Optional[UUID] = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
):
    """Lists the orders visible to the caller's role, newest first."""
    try:
        orders = await list_orders(
            actor,
            status=status_filter,
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            delivery_partner_id=delivery_partner_id,
            limit=limit,
            offset=offset,
        )
        return SuccessResponse(data=[_detail(o, include_items=True) for o in orders])
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error listing orders: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list orders.")


@router.get("/{order_id}", response_model=SuccessResponse)
async def get_order_endpoint(order_id: UUID, actor: Actor = Depends(get_current_actor)):
    """Fetches details for a specific order."""
    try:
        order = await get_order(actor, order_id)
        return SuccessResponse(data=_detail(order, include_items=True))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error fetching order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch order details.")


@router.patch("/{order_id}/status", response_model=SuccessResponse)
async def update_status_endpoint(
    order_id: UUID,
    payload: OrderStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    notifier: OrderNotifier = Depends(get_notifier),
):
    """
    Moves the order to a new status, subject to the caller's role
    (e.g. restaurant 'preparing', delivery partner 'on_the_way').
    """
    try:
        order = await apply_transition(actor, order_id, payload.status, notifier, note=payload.note)
        return SuccessResponse(data=_detail(order))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error updating order status: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update order status.")


@router.post("/{order_id}/cancel", response_model=SuccessResponse)
async def cancel_order_endpoint(
    order_id: UUID,
    payload: Optional[CancelRequest] = None,
    actor: Actor = Depends(get_current_actor),
    notifier: OrderNotifier = Depends(get_notifier),
):
    """Cancels the order. Customers may only do so before preparation starts."""
    try:
        reason = payload.reason if payload else None
        order = await cancel_order(actor, order_id, notifier, reason=reason)
        return SuccessResponse(data=_detail(order))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error cancelling order: {e}")
        raise HTTPException(status_code=500, detail="Server failed to cancel order.")


@router.get("/{order_id}/track", response_model=SuccessResponse)
async def track_order_endpoint(order_id: UUID, actor: Actor = Depends(get_current_actor)):
    try:
        order, timeline = await track_order(actor, order_id)
        data = OrderTrackResponse(
            order_id=order.id,
            order_number=order.order_number,
            status=order.status,
            timeline=[
                TimelineEntryResponse(status=e.status, timestamp=e.timestamp, note=e.note)
                for e in timeline
            ],
        ).model_dump(mode="json")
        return SuccessResponse(data=data)
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error tracking order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to track order.")


@router.post("/{order_id}/assign", response_model=SuccessResponse)
async def assign_partner_endpoint(
    order_id: UUID,
    payload: AssignPartnerRequest,
    actor: Actor = Depends(get_current_actor),
    notifier: OrderNotifier = Depends(get_notifier),
):
    try:
        order = await assign_delivery_partner(actor, order_id, payload.delivery_partner_id, notifier)
        return SuccessResponse(data=_detail(order))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error assigning order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to assign delivery partner.")


@router.post("/{order_id}/rate", response_model=SuccessResponse)
async def rate_order_endpoint(order_id: UUID, payload: RatingRequest, actor: Actor = Depends(get_current_actor)):
    try:
        order = await rate_order(actor, order_id, payload.food, payload.delivery, review=payload.review)
        return SuccessResponse(data=_detail(order))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error rating order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to rate order.")


@router.get("/{order_id}/delivery-location", response_model=SuccessResponse)
async def delivery_location_endpoint(order_id: UUID, actor: Actor = Depends(get_current_actor)):
    """Last reported position of the partner carrying this order."""
    try:
        location = await get_partner_location(actor, order_id)
        data = LocationResponse(
            order_id=location.order_id,
            latitude=location.latitude,
            longitude=location.longitude,
            updated_at=location.updated_at,
        ).model_dump(mode="json")
        return SuccessResponse(data=data)
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error fetching delivery location for {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch delivery location.")
