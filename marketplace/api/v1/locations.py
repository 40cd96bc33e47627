import logging

from fastapi import APIRouter, Depends, HTTPException

from marketplace.core.errors import MarketplaceError
from marketplace.core.security import get_current_actor
from marketplace.domain.actors import Actor
from marketplace.realtime.notifier import OrderNotifier, get_notifier
from marketplace.schemas.order import LocationReport
from marketplace.schemas.response import SuccessResponse
from marketplace.services.location_service import report_location

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.put("/location", response_model=SuccessResponse)
async def report_location_endpoint(
    payload: LocationReport,
    actor: Actor = Depends(get_current_actor),
    notifier: OrderNotifier = Depends(get_notifier),
):
    """HTTP twin of the `location:update` socket event for delivery partners."""
    try:
        notified = await report_location(actor, payload.latitude, payload.longitude, notifier)
        return SuccessResponse(data={"latitude": payload.latitude, "longitude": payload.longitude, "orders_notified": notified})
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error updating location: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update location.")
