"""
Order state machine.

Pure decision logic: given an actor, a snapshot of the order and a requested
status, either raise (`Forbidden` / `InvalidState`) or return the mutation to
persist. Nothing here performs I/O; the order service applies the plan under
an atomic conditional update.

The order snapshot only needs ``status``, ``customer_id``, ``restaurant_id``,
``delivery_partner_id`` and ``delivered_at`` attributes, so both ORM rows and
plain objects work.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from marketplace.core import config
from marketplace.core.errors import Forbidden, InvalidState
from marketplace.domain.actors import Actor, Role
from marketplace.domain.status import OrderStatus, StatusVariant

# Targets each non-admin role may request, independent of current status.
ROLE_ALLOWED_TARGETS: Dict[Role, FrozenSet[OrderStatus]] = {
    Role.RESTAURANT: frozenset({OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY}),
    Role.DELIVERY: frozenset({
        OrderStatus.PICKED,
        OrderStatus.ON_THE_WAY,
        OrderStatus.DELAYED,
        OrderStatus.DELIVERED,
    }),
    Role.CUSTOMER: frozenset({OrderStatus.CANCELLED}),
}

# Food already in progress cannot be cancelled by the customer.
CUSTOMER_CANCELLABLE: FrozenSet[OrderStatus] = frozenset({OrderStatus.PLACED, OrderStatus.CONFIRMED})


def _same(left, right) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def owns_order(actor: Actor, order) -> bool:
    """Role-appropriate foreign key check. Admins own everything."""
    if actor.role == Role.ADMIN:
        return True
    if actor.role == Role.CUSTOMER:
        return _same(order.customer_id, actor.id)
    if actor.role == Role.RESTAURANT:
        return _same(order.restaurant_id, actor.id)
    if actor.role == Role.DELIVERY:
        return _same(order.delivery_partner_id, actor.id)
    return False


def can_view(actor: Actor, order) -> bool:
    """Any party attached to the order may read it."""
    if actor.role == Role.ADMIN:
        return True
    return any(
        _same(fk, actor.id)
        for fk in (order.customer_id, order.restaurant_id, order.delivery_partner_id)
    )


def admin_may_leave(current: StatusVariant) -> bool:
    """Single policy point for the admin override on terminal orders."""
    if not current.is_terminal:
        return True
    return config.ADMIN_CAN_REOPEN_TERMINAL


def check_transition(actor: Actor, order, target: OrderStatus) -> None:
    """Raises Forbidden or InvalidState when `actor` may not move `order` to `target`."""
    target = OrderStatus(target)
    current = StatusVariant.from_wire(order.status)

    if not owns_order(actor, order):
        raise Forbidden("You do not have permission to update this order")

    if actor.role == Role.ADMIN:
        if not admin_may_leave(current):
            raise InvalidState(f"Order is already in a final state: {current.to_wire().value}")
        return

    allowed = ROLE_ALLOWED_TARGETS.get(actor.role, frozenset())
    if target not in allowed:
        raise Forbidden(f"Role '{actor.role.value}' cannot set status '{target.value}'")

    if current.is_terminal:
        raise InvalidState(f"Order is already in a final state: {current.to_wire().value}")

    if actor.role == Role.CUSTOMER and OrderStatus(order.status) not in CUSTOMER_CANCELLABLE:
        raise InvalidState("Order cannot be cancelled once preparation has started")


def can_transition(actor: Actor, order, target: OrderStatus) -> bool:
    try:
        check_transition(actor, order, target)
    except (Forbidden, InvalidState):
        return False
    return True


@dataclass
class TransitionPlan:
    previous: OrderStatus
    status: OrderStatus
    changed: bool
    timestamp: datetime
    note: Optional[str] = None
    # Extra order columns to write alongside the status
    updates: Dict[str, object] = field(default_factory=dict)


def plan_transition(actor: Actor, order, target: OrderStatus, now: datetime, note: Optional[str] = None) -> TransitionPlan:
    """
    Validates the request and describes the resulting mutation.

    Re-requesting the current status is accepted but produces ``changed=False``:
    no timeline entry and no column updates.
    """
    check_transition(actor, order, target)
    previous = OrderStatus(order.status)
    target = OrderStatus(target)
    plan = TransitionPlan(previous=previous, status=target, changed=previous != target, timestamp=now, note=note)
    if not plan.changed:
        return plan

    plan.updates["status"] = target
    variant = StatusVariant.from_wire(target)
    if variant.is_cancelled:
        plan.updates["cancellation_reason"] = note
        plan.updates["cancellation_time"] = now
        plan.updates["cancelled_by_user_id"] = actor.id
        plan.updates["cancelled_by_role"] = actor.role.value
    elif StatusVariant.from_wire(previous).is_cancelled:
        # Reopened by an admin: the order is no longer cancelled
        for column in ("cancellation_reason", "cancellation_time", "cancelled_by_user_id", "cancelled_by_role"):
            plan.updates[column] = None
    if target == OrderStatus.DELIVERED:
        plan.updates["actual_delivery_time"] = now
        if order.delivered_at is None:
            plan.updates["delivered_at"] = now
    return plan


def actor_id_matches(value: Optional[UUID], actor: Actor) -> bool:
    return _same(value, actor.id)
