import logging
from typing import Iterable, List, Optional
from uuid import UUID

from marketplace.core import config
from marketplace.core.errors import NotFound
from marketplace.domain.actors import Actor, Role
from marketplace.models.notification import Notification, NotificationType
from marketplace.models.user import User

log = logging.getLogger("notification_service")


async def admin_ids(conn) -> List[UUID]:
    return await User.filter(role=Role.ADMIN).using_db(conn).values_list("id", flat=True)


async def record_notifications(
    user_ids: Iterable[UUID],
    message: str,
    conn,
    type: NotificationType = NotificationType.ORDER,
    order_id: Optional[UUID] = None,
    pickup_id: Optional[UUID] = None,
) -> int:
    """Saves one inbox row per recipient on the caller's transaction."""
    rows = [
        Notification(user_id=user_id, message=message, type=type, order_id=order_id, pickup_id=pickup_id)
        for user_id in user_ids
    ]
    if rows:
        await Notification.bulk_create(rows, using_db=conn)
    return len(rows)


async def list_notifications(actor: Actor, unread_only: bool = False, limit: int = 50, offset: int = 0) -> List[Notification]:
    """The caller's own inbox, newest first."""
    query = Notification.filter(user_id=actor.id)
    if unread_only:
        query = query.filter(read=False)
    limit = max(1, min(limit, config.MAX_PAGE_SIZE))
    return await query.order_by("-created_at").offset(max(offset, 0)).limit(limit)


async def mark_read(actor: Actor, notification_id: UUID) -> Notification:
    updated = await Notification.filter(id=notification_id, user_id=actor.id).update(read=True)
    if not updated:
        raise NotFound("Notification not found")
    return await Notification.get(id=notification_id)


async def mark_all_read(actor: Actor) -> int:
    updated = await Notification.filter(user_id=actor.id, read=False).update(read=True)
    log.info(f"Marked {updated} notification(s) read for {actor.role.value} {actor.id}")
    return updated
