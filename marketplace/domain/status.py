"""
Order status vocabulary.

Storage and the wire use the flat string values of `OrderStatus`. Inside the
service a status is handled as a `StatusVariant`: a lifecycle kind plus an
optional reason, so "cancelled_by_customer" and "cancelled" are both
``StatusKind.CANCELLED`` and share the cancelled-family behaviour.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional


class OrderStatus(str, Enum):
    PLACED = "placed"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    PACKING = "packing"
    PACKED = "packed"
    READY = "ready"
    PICKED = "picked"
    ON_THE_WAY = "on_the_way"
    DELAYED = "delayed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    # Reason-qualified variants (admin vocabulary)
    DELAYED_HIGH_DEMAND = "delayed_high_demand"
    DELAYED_WEATHER = "delayed_weather"
    DELAYED_RIDER_ASSIGNED_LATE = "delayed_rider_assigned_late"
    DELAYED_RIDER_UNAVAILABLE = "delayed_rider_unavailable"
    CANCELLED_BY_CUSTOMER = "cancelled_by_customer"
    CANCELLED_BY_ADMIN = "cancelled_by_admin"
    CANCELLED_PAYMENT_FAILED = "cancelled_payment_failed"
    DELIVERY_FAILED_WRONG_ADDRESS = "delivery_failed_wrong_address"
    DELIVERY_FAILED_NO_RESPONSE = "delivery_failed_no_response"
    ON_HOLD = "on_hold"
    REFUND_ISSUED = "refund_issued"


class StatusKind(str, Enum):
    PLACED = "placed"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    PACKING = "packing"
    PACKED = "packed"
    READY = "ready"
    PICKED = "picked"
    ON_THE_WAY = "on_the_way"
    DELAYED = "delayed"
    DELIVERED = "delivered"
    DELIVERY_FAILED = "delivery_failed"
    CANCELLED = "cancelled"
    ON_HOLD = "on_hold"
    REFUND_ISSUED = "refund_issued"


class DelayReason(str, Enum):
    HIGH_DEMAND = "high_demand"
    WEATHER = "weather"
    RIDER_ASSIGNED_LATE = "rider_assigned_late"
    RIDER_UNAVAILABLE = "rider_unavailable"


class CancelReason(str, Enum):
    BY_CUSTOMER = "by_customer"
    BY_ADMIN = "by_admin"
    PAYMENT_FAILED = "payment_failed"


class DeliveryFailureReason(str, Enum):
    WRONG_ADDRESS = "wrong_address"
    NO_RESPONSE = "no_response"


TERMINAL_KINDS: FrozenSet[StatusKind] = frozenset({
    StatusKind.DELIVERED,
    StatusKind.CANCELLED,
    StatusKind.REFUND_ISSUED,
})


@dataclass(frozen=True)
class StatusVariant:
    kind: StatusKind
    reason: Optional[Enum] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    @property
    def is_cancelled(self) -> bool:
        return self.kind is StatusKind.CANCELLED

    @classmethod
    def from_wire(cls, value) -> "StatusVariant":
        """Raises ValueError for an unknown status literal."""
        return _VARIANTS[OrderStatus(value)]

    def to_wire(self) -> OrderStatus:
        return _WIRE[self]


_VARIANTS: Dict[OrderStatus, StatusVariant] = {
    OrderStatus.PLACED: StatusVariant(StatusKind.PLACED),
    OrderStatus.CONFIRMED: StatusVariant(StatusKind.CONFIRMED),
    OrderStatus.PREPARING: StatusVariant(StatusKind.PREPARING),
    OrderStatus.PACKING: StatusVariant(StatusKind.PACKING),
    OrderStatus.PACKED: StatusVariant(StatusKind.PACKED),
    OrderStatus.READY: StatusVariant(StatusKind.READY),
    OrderStatus.PICKED: StatusVariant(StatusKind.PICKED),
    OrderStatus.ON_THE_WAY: StatusVariant(StatusKind.ON_THE_WAY),
    OrderStatus.DELAYED: StatusVariant(StatusKind.DELAYED),
    OrderStatus.DELIVERED: StatusVariant(StatusKind.DELIVERED),
    OrderStatus.CANCELLED: StatusVariant(StatusKind.CANCELLED),
    OrderStatus.DELAYED_HIGH_DEMAND: StatusVariant(StatusKind.DELAYED, DelayReason.HIGH_DEMAND),
    OrderStatus.DELAYED_WEATHER: StatusVariant(StatusKind.DELAYED, DelayReason.WEATHER),
    OrderStatus.DELAYED_RIDER_ASSIGNED_LATE: StatusVariant(StatusKind.DELAYED, DelayReason.RIDER_ASSIGNED_LATE),
    OrderStatus.DELAYED_RIDER_UNAVAILABLE: StatusVariant(StatusKind.DELAYED, DelayReason.RIDER_UNAVAILABLE),
    OrderStatus.CANCELLED_BY_CUSTOMER: StatusVariant(StatusKind.CANCELLED, CancelReason.BY_CUSTOMER),
    OrderStatus.CANCELLED_BY_ADMIN: StatusVariant(StatusKind.CANCELLED, CancelReason.BY_ADMIN),
    OrderStatus.CANCELLED_PAYMENT_FAILED: StatusVariant(StatusKind.CANCELLED, CancelReason.PAYMENT_FAILED),
    OrderStatus.DELIVERY_FAILED_WRONG_ADDRESS: StatusVariant(StatusKind.DELIVERY_FAILED, DeliveryFailureReason.WRONG_ADDRESS),
    OrderStatus.DELIVERY_FAILED_NO_RESPONSE: StatusVariant(StatusKind.DELIVERY_FAILED, DeliveryFailureReason.NO_RESPONSE),
    OrderStatus.ON_HOLD: StatusVariant(StatusKind.ON_HOLD),
    OrderStatus.REFUND_ISSUED: StatusVariant(StatusKind.REFUND_ISSUED),
}

_WIRE: Dict[StatusVariant, OrderStatus] = {variant: wire for wire, variant in _VARIANTS.items()}


def is_terminal(status) -> bool:
    return StatusVariant.from_wire(status).is_terminal
