import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from marketplace.core.errors import MarketplaceError
from marketplace.core.security import get_current_actor
from marketplace.domain.actors import Actor
from marketplace.domain.pickup_machine import PickupStatus
from marketplace.realtime.notifier import OrderNotifier, get_notifier
from marketplace.schemas.order import AssignPartnerRequest, CancelRequest
from marketplace.schemas.pickup import (
    PickupAmountUpdate,
    PickupRequest,
    PickupResponse,
    PickupStatusUpdate,
)
from marketplace.schemas.response import SuccessResponse
from marketplace.services.pickup_service import (
    assign_pickup,
    book_pickup,
    cancel_pickup,
    get_pickup,
    list_pickups,
    set_pickup_amount,
    update_pickup_status,
)

router = APIRouter()
log = logging.getLogger("uvicorn")


def _pickup(pickup, timeline=None) -> dict:
    return PickupResponse.from_pickup(pickup, timeline).model_dump(mode="json")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def book_pickup_endpoint(
    payload: PickupRequest,
    actor: Actor = Depends(get_current_actor),
    notifier: OrderNotifier = Depends(get_notifier),
):
    try:
        pickup = await book_pickup(
            actor,
            payload.pickup_address,
            payload.drop_address,
            payload.item_category,
            notifier,
            note=payload.note,
        )
        return SuccessResponse(data=_pickup(pickup))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error booking pickup: {e}")
        raise HTTPException(status_code=500, detail="Server failed to book pickup.")


@router.get("/", response_model=SuccessResponse)
async def list_pickups_endpoint(
    status_filter: Optional[PickupStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
):
    try:
        pickups = await list_pickups(actor, status=status_filter, limit=limit, offset=offset)
        return SuccessResponse(data=[_pickup(p) for p in pickups])
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error listing pickups: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list pickups.")


@router.get("/{pickup_id}", response_model=SuccessResponse)
async def get_pickup_endpoint(pickup_id: UUID, actor: Actor = Depends(get_current_actor)):
    try:
        pickup, timeline = await get_pickup(actor, pickup_id)
        return SuccessResponse(data=_pickup(pickup, timeline))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error fetching pickup {pickup_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch pickup.")


@router.patch("/{pickup_id}/status", response_model=SuccessResponse)
async def update_pickup_status_endpoint(
    pickup_id: UUID,
    payload: PickupStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    notifier: OrderNotifier = Depends(get_notifier),
):
    try:
        pickup = await update_pickup_status(actor, pickup_id, payload.status, notifier, note=payload.note)
        return SuccessResponse(data=_pickup(pickup))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error updating pickup status: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update pickup status.")


@router.post("/{pickup_id}/cancel", response_model=SuccessResponse)
async def cancel_pickup_endpoint(
    pickup_id: UUID,
    payload: Optional[CancelRequest] = None,
    actor: Actor = Depends(get_current_actor),
    notifier: OrderNotifier = Depends(get_notifier),
):
    try:
        reason = payload.reason if payload else None
        pickup = await cancel_pickup(actor, pickup_id, notifier, reason=reason)
        return SuccessResponse(data=_pickup(pickup))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error cancelling pickup: {e}")
        raise HTTPException(status_code=500, detail="Server failed to cancel pickup.")


@router.post("/{pickup_id}/assign", response_model=SuccessResponse)
async def assign_pickup_endpoint(
    pickup_id: UUID,
    payload: AssignPartnerRequest,
    actor: Actor = Depends(get_current_actor),
    notifier: OrderNotifier = Depends(get_notifier),
):
    try:
        pickup = await assign_pickup(actor, pickup_id, payload.delivery_partner_id, notifier)
        return SuccessResponse(data=_pickup(pickup))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error assigning pickup: {e}")
        raise HTTPException(status_code=500, detail="Server failed to assign pickup.")


@router.patch("/{pickup_id}/amount", response_model=SuccessResponse)
async def set_pickup_amount_endpoint(
    pickup_id: UUID,
    payload: PickupAmountUpdate,
    actor: Actor = Depends(get_current_actor),
):
    try:
        pickup = await set_pickup_amount(actor, pickup_id, payload.total_amount)
        return SuccessResponse(data=_pickup(pickup))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error setting pickup amount: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update pickup amount.")
