import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from marketplace.core.errors import MarketplaceError
from marketplace.core.security import get_current_actor
from marketplace.domain.actors import Actor
from marketplace.schemas.notification import NotificationResponse
from marketplace.schemas.response import SuccessResponse
from marketplace.services.notification_service import list_notifications, mark_all_read, mark_read

router = APIRouter()
log = logging.getLogger("uvicorn")


def _notification(notification) -> dict:
    return NotificationResponse.from_notification(notification).model_dump(mode="json")


@router.get("/notifications", response_model=SuccessResponse)
async def list_notifications_endpoint(
    unread: bool = False,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
):
    """The caller's saved alerts, newest first."""
    try:
        notifications = await list_notifications(actor, unread_only=unread, limit=limit, offset=offset)
        return SuccessResponse(data=[_notification(n) for n in notifications])
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error fetching notifications: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch notifications.")


@router.patch("/notifications/read-all", response_model=SuccessResponse)
async def mark_all_read_endpoint(actor: Actor = Depends(get_current_actor)):
    try:
        updated = await mark_all_read(actor)
        return SuccessResponse(data={"updated": updated})
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error marking notifications read: {e}")
        raise HTTPException(status_code=500, detail="Server failed to mark notifications as read.")


@router.patch("/notifications/{notification_id}/read", response_model=SuccessResponse)
async def mark_read_endpoint(notification_id: UUID, actor: Actor = Depends(get_current_actor)):
    try:
        notification = await mark_read(actor, notification_id)
        return SuccessResponse(data=_notification(notification))
    except (MarketplaceError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error marking notification {notification_id} read: {e}")
        raise HTTPException(status_code=500, detail="Server failed to mark notification as read.")
