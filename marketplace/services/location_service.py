import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from tortoise import timezone

from marketplace.core.errors import Forbidden, LocationUnavailable, NotFound, ValidationError
from marketplace.domain.actors import Actor, Role
from marketplace.domain.state_machine import actor_id_matches
from marketplace.domain.status import OrderStatus
from marketplace.models.order import Order
from marketplace.models.user import User
from marketplace.realtime.notifier import OrderNotifier

log = logging.getLogger("location_service")

# Only customers whose food is actually travelling see the partner move
IN_FLIGHT_STATUSES = (OrderStatus.PICKED, OrderStatus.ON_THE_WAY)


@dataclass
class PartnerLocation:
    order_id: UUID
    latitude: float
    longitude: float
    updated_at: Optional[datetime] = None


def _validate_coordinates(latitude, longitude) -> None:
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise ValidationError("latitude and longitude must be numbers")
    if not -90 <= lat <= 90 or not -180 <= lon <= 180:
        raise ValidationError("Coordinates out of range")


async def report_location(actor: Actor, latitude: float, longitude: float, notifier: OrderNotifier) -> int:
    """
    Stores the partner's position (last write wins) and relays it to the
    customers of their in-flight orders. Returns how many orders were notified.
    """
    if actor.role != Role.DELIVERY:
        raise Forbidden("Only delivery partners can update location")
    _validate_coordinates(latitude, longitude)
    latitude, longitude = float(latitude), float(longitude)

    await User.filter(id=actor.id).update(
        current_latitude=latitude,
        current_longitude=longitude,
        location_updated_at=timezone.now(),
    )

    active_orders = await Order.filter(delivery_partner_id=actor.id, status__in=list(IN_FLIGHT_STATUSES))
    for order in active_orders:
        await notifier.location_changed(order, latitude, longitude)

    log.debug(f"Partner {actor.id} at ({latitude}, {longitude}); relayed to {len(active_orders)} order(s)")
    return len(active_orders)


async def get_partner_location(actor: Actor, order_id: UUID) -> PartnerLocation:
    """Pull-style lookup for the order's customer or restaurant."""
    order = await Order.get_or_none(id=order_id)
    if not order:
        raise NotFound("Order not found")

    if not (actor_id_matches(order.customer_id, actor) or actor_id_matches(order.restaurant_id, actor)):
        raise Forbidden("Unauthorized access")

    if not order.delivery_partner_id:
        raise LocationUnavailable("No delivery partner assigned yet")

    partner = await User.get_or_none(id=order.delivery_partner_id)
    if not partner or not partner.has_location:
        raise LocationUnavailable("Location not available")

    return PartnerLocation(
        order_id=order.id,
        latitude=partner.current_latitude,
        longitude=partner.current_longitude,
        updated_at=partner.location_updated_at,
    )
