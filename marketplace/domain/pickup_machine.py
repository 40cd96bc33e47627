"""Status rules for courier-only pickup/drop tasks."""
from enum import Enum
from typing import Dict, FrozenSet

from marketplace.core.errors import Forbidden, InvalidState, ValidationError
from marketplace.domain.actors import Actor, Role
from marketplace.domain.state_machine import actor_id_matches


class PickupStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REACHED_PICKUP_LOCATION = "reached_pickup_location"
    PICKED_UP = "picked_up"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ItemCategory(str, Enum):
    LUNCHBOX = "lunchbox"
    DOCUMENTS = "documents"
    CLOTHES = "clothes"
    OTHERS = "others"


# Labels the courier and customer apps send in place of the enum values
_STATUS_ALIASES: Dict[str, PickupStatus] = {
    "picked": PickupStatus.PICKED_UP,
    "picked up": PickupStatus.PICKED_UP,
    "reached pickup location": PickupStatus.REACHED_PICKUP_LOCATION,
    "on the way to drop location": PickupStatus.ON_THE_WAY,
    "on_the_way_to_drop_location": PickupStatus.ON_THE_WAY,
}

PICKUP_TERMINAL: FrozenSet[PickupStatus] = frozenset({PickupStatus.DELIVERED, PickupStatus.CANCELLED})

DELIVERY_ALLOWED_TARGETS: FrozenSet[PickupStatus] = frozenset({
    PickupStatus.ACCEPTED,
    PickupStatus.REACHED_PICKUP_LOCATION,
    PickupStatus.PICKED_UP,
    PickupStatus.ON_THE_WAY,
    PickupStatus.DELIVERED,
})

CUSTOMER_CANCELLABLE: FrozenSet[PickupStatus] = frozenset({PickupStatus.PENDING, PickupStatus.ACCEPTED})


def parse_pickup_status(value: str) -> PickupStatus:
    key = (value or "").strip()
    try:
        return PickupStatus(key.lower())
    except ValueError:
        pass
    alias = _STATUS_ALIASES.get(key.lower())
    if alias is None:
        allowed = ", ".join(s.value for s in PickupStatus)
        raise ValidationError(f"Status can only be one of: {allowed}")
    return alias


def check_pickup_transition(actor: Actor, pickup, target: PickupStatus) -> None:
    current = PickupStatus(pickup.status)

    if actor.role == Role.ADMIN:
        if current in PICKUP_TERMINAL:
            raise InvalidState(f"Pickup is already {current.value}")
        return

    if actor.role == Role.CUSTOMER:
        if not actor_id_matches(pickup.customer_id, actor):
            raise Forbidden("You do not have permission to update this pickup")
        if target != PickupStatus.CANCELLED:
            raise Forbidden("Customers can only cancel a pickup")
        if current not in CUSTOMER_CANCELLABLE:
            raise InvalidState("Pickup cannot be cancelled once the courier is on the way")
        return

    if actor.role == Role.DELIVERY:
        if not actor_id_matches(pickup.delivery_partner_id, actor):
            raise Forbidden("Pickup is not assigned to you")
        if target not in DELIVERY_ALLOWED_TARGETS:
            raise Forbidden(f"Delivery partners cannot set status '{target.value}'")
        if current in PICKUP_TERMINAL:
            raise InvalidState(f"Pickup is already {current.value}")
        return

    raise Forbidden("You do not have permission to update this pickup")


def can_view_pickup(actor: Actor, pickup) -> bool:
    if actor.role == Role.ADMIN:
        return True
    return actor_id_matches(pickup.customer_id, actor) or actor_id_matches(pickup.delivery_partner_id, actor)
