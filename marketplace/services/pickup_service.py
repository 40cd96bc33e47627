import logging
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from tortoise import timezone
from tortoise.transactions import in_transaction

from marketplace.core import config
from marketplace.core.errors import Forbidden, InvalidState, NotFound, ValidationError
from marketplace.domain.actors import AccountStatus, Actor, Role
from marketplace.domain.pickup_machine import (
    PICKUP_TERMINAL,
    ItemCategory,
    PickupStatus,
    can_view_pickup,
    check_pickup_transition,
    parse_pickup_status,
)
from marketplace.models.notification import NotificationType
from marketplace.models.pickup import PickupDrop, PickupStatusEvent
from marketplace.models.user import User
from marketplace.realtime.notifier import OrderNotifier
from marketplace.services.notification_service import admin_ids, record_notifications

log = logging.getLogger("pickup_service")


async def _append_event(pickup_id: UUID, status: PickupStatus, now, note: Optional[str], conn) -> None:
    position = await PickupStatusEvent.filter(pickup_id=pickup_id).using_db(conn).count() + 1
    await PickupStatusEvent.create(
        pickup_id=pickup_id,
        position=position,
        status=status,
        timestamp=now,
        note=note,
        using_db=conn,
    )


async def book_pickup(
    actor: Actor,
    pickup_address: str,
    drop_address: str,
    item_category: str,
    notifier: OrderNotifier,
    note: Optional[str] = None,
) -> PickupDrop:
    if actor.role != Role.CUSTOMER:
        raise Forbidden("Only customers can book pickups")
    if not pickup_address or not drop_address:
        raise ValidationError("Pickup and drop addresses are required")
    try:
        category = ItemCategory((item_category or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown item category: {item_category}")

    now = timezone.now()
    async with in_transaction() as conn:
        pickup = await PickupDrop.create(
            customer_id=actor.id,
            pickup_address=pickup_address,
            drop_address=drop_address,
            item_category=category,
            note=note,
            status=PickupStatus.PENDING,
            using_db=conn,
        )
        await _append_event(pickup.id, PickupStatus.PENDING, now, None, conn)
        await record_notifications(
            await admin_ids(conn),
            f"New pickup booked (Pickup ID: {pickup.id})",
            conn,
            type=NotificationType.SYSTEM,
            pickup_id=pickup.id,
        )

    log.info(f"Pickup {pickup.id} booked by customer {actor.id}")
    await notifier.pickup_booked(pickup)
    return pickup


async def update_pickup_status(
    actor: Actor,
    pickup_id: UUID,
    status: str,
    notifier: OrderNotifier,
    note: Optional[str] = None,
) -> PickupDrop:
    """Same discipline as orders: locked read, conditional write, timeline append."""
    target = status if isinstance(status, PickupStatus) else parse_pickup_status(status)

    async with in_transaction() as conn:
        pickup = await PickupDrop.filter(id=pickup_id).using_db(conn).select_for_update().first()
        if not pickup:
            raise NotFound("Pickup not found")

        check_pickup_transition(actor, pickup, target)
        previous = PickupStatus(pickup.status)
        if previous == target:
            return pickup

        now = timezone.now()
        updates = {"status": target, "status_note": note, "updated_at": now}
        if target == PickupStatus.CANCELLED:
            updates["cancel_reason"] = note
        updated = await PickupDrop.filter(id=pickup.id, status=previous).using_db(conn).update(**updates)
        if not updated:
            raise InvalidState("Pickup status changed while this request was processed")
        await _append_event(pickup.id, target, now, note, conn)
        for field, value in updates.items():
            setattr(pickup, field, value)

    log.info(f"Pickup {pickup.id}: {previous.value} -> {target.value} by {actor.role.value} {actor.id}")
    await notifier.pickup_status_changed(pickup, now)
    return pickup


async def cancel_pickup(actor: Actor, pickup_id: UUID, notifier: OrderNotifier, reason: Optional[str] = None) -> PickupDrop:
    if actor.role == Role.CUSTOMER:
        reason = reason or "Cancelled by customer"
    elif actor.role == Role.ADMIN:
        reason = reason or "Cancelled by admin"
    else:
        raise Forbidden("Only customers and admins can cancel pickups")
    return await update_pickup_status(actor, pickup_id, PickupStatus.CANCELLED, notifier, note=reason)


async def assign_pickup(actor: Actor, pickup_id: UUID, partner_id: UUID, notifier: OrderNotifier) -> PickupDrop:
    """Assignment leaves the status untouched; the partner accepts it explicitly."""
    if actor.role != Role.ADMIN:
        raise Forbidden("Only admins can assign pickups")

    partner = await User.get_or_none(id=partner_id)
    if not partner:
        raise NotFound("Delivery partner not found")
    if partner.role != Role.DELIVERY or partner.status != AccountStatus.ACTIVE:
        raise ValidationError("User is not an active delivery partner")

    pickup = await PickupDrop.get_or_none(id=pickup_id)
    if not pickup:
        raise NotFound("Pickup not found")
    if PickupStatus(pickup.status) in PICKUP_TERMINAL:
        raise InvalidState(f"Pickup is already {PickupStatus(pickup.status).value}")

    now = timezone.now()
    updated = await PickupDrop.filter(id=pickup.id, status=pickup.status).update(
        delivery_partner_id=partner.id, updated_at=now
    )
    if not updated:
        raise InvalidState("Pickup status changed while this request was processed")
    pickup.delivery_partner_id = partner.id

    await notifier.pickup_status_changed(pickup, now)
    return pickup


async def set_pickup_amount(actor: Actor, pickup_id: UUID, amount: Decimal) -> PickupDrop:
    if actor.role != Role.ADMIN:
        raise Forbidden("Only admins can set pickup amounts")
    if amount is None or Decimal(amount) < 0:
        raise ValidationError("totalAmount must be a non-negative number")

    pickup = await PickupDrop.get_or_none(id=pickup_id)
    if not pickup:
        raise NotFound("Pickup not found")
    pickup.total_amount = Decimal(amount)
    await pickup.save(update_fields=["total_amount", "updated_at"])
    return pickup


async def get_pickup(actor: Actor, pickup_id: UUID) -> Tuple[PickupDrop, List[PickupStatusEvent]]:
    pickup = await PickupDrop.get_or_none(id=pickup_id)
    if not pickup:
        raise NotFound("Pickup not found")
    if not can_view_pickup(actor, pickup):
        raise Forbidden("You do not have access to this pickup")
    timeline = await PickupStatusEvent.filter(pickup_id=pickup.id).order_by("position")
    return pickup, timeline


async def list_pickups(actor: Actor, status: Optional[PickupStatus] = None, limit: int = 50, offset: int = 0) -> List[PickupDrop]:
    query = PickupDrop.all()
    if actor.role == Role.CUSTOMER:
        query = query.filter(customer_id=actor.id)
    elif actor.role == Role.DELIVERY:
        query = query.filter(delivery_partner_id=actor.id)
    elif actor.role != Role.ADMIN:
        raise Forbidden("Restaurants have no pickups")

    if status:
        query = query.filter(status=status)
    limit = max(1, min(limit, config.MAX_PAGE_SIZE))
    return await query.order_by("-created_at").offset(max(offset, 0)).limit(limit)
