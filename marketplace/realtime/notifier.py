import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import Request

from marketplace.domain.actors import Role
from marketplace.domain.pickup_machine import PickupStatus
from marketplace.domain.status import OrderStatus
from marketplace.realtime.hub import (
    Publisher,
    delivery_topic,
    restaurant_topic,
    role_topic,
    user_topic,
)

log = logging.getLogger("marketplace.notifier")


class OrderNotifier:
    """
    Post-commit fan-out of order and pickup changes.

    Every publish is fire-and-forget: a failure is logged and never reaches
    the caller, whose persisted change already stands.
    """

    def __init__(self, publisher: Publisher):
        self.publisher = publisher

    async def _emit(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        try:
            await self.publisher.publish(topic, event, payload)
        except Exception as e:
            log.warning(f"Real-time publish of {event} to {topic} failed: {e}")

    @staticmethod
    def order_payload(order, timestamp: datetime) -> Dict[str, Any]:
        return {
            "orderId": str(order.id),
            "orderNumber": order.order_number,
            "status": OrderStatus(order.status).value,
            "updatedAt": timestamp.isoformat(),
        }

    async def order_status_changed(self, order, timestamp: datetime) -> None:
        payload = self.order_payload(order, timestamp)

        topics = [user_topic(order.customer_id)]
        if order.restaurant_id:
            topics.append(restaurant_topic(order.restaurant_id))
        if order.delivery_partner_id:
            topics.append(delivery_topic(order.delivery_partner_id))
        topics.append(role_topic(Role.ADMIN))

        for topic in topics:
            await self._emit(topic, "order:status_update", payload)

        status = OrderStatus(order.status)
        if status == OrderStatus.PLACED and order.restaurant_id:
            await self._emit(
                restaurant_topic(order.restaurant_id),
                "order:placed",
                {**payload, "message": "New order received!"},
            )
        elif status == OrderStatus.READY:
            # Any idle partner may pick it up, so the whole role is told
            await self._emit(
                role_topic(Role.DELIVERY),
                "order:ready_for_pickup",
                {
                    **payload,
                    "restaurant": str(order.restaurant_id) if order.restaurant_id else None,
                    "message": "New order ready for pickup!",
                },
            )
        elif status == OrderStatus.DELIVERED:
            await self._emit(
                user_topic(order.customer_id),
                "order:rate_request",
                {**payload, "message": "How was your order? Please rate your experience!"},
            )

    async def order_assigned(self, order) -> None:
        await self._emit(
            user_topic(order.delivery_partner_id),
            "order:assigned",
            {
                "orderId": str(order.id),
                "orderNumber": order.order_number,
                "status": OrderStatus(order.status).value,
                "message": f"You have been assigned a new delivery order ({order.order_number})",
            },
        )

    async def location_changed(self, order, latitude: float, longitude: float) -> None:
        await self._emit(
            user_topic(order.customer_id),
            "location:update",
            {"orderId": str(order.id), "location": {"latitude": latitude, "longitude": longitude}},
        )

    async def pickup_booked(self, pickup) -> None:
        await self._emit(
            role_topic(Role.ADMIN),
            "pickup:booked",
            {"pickupId": str(pickup.id), "message": f"New pickup booked (Pickup ID: {pickup.id})"},
        )

    async def pickup_status_changed(self, pickup, timestamp: datetime) -> None:
        payload = {
            "pickupId": str(pickup.id),
            "status": PickupStatus(pickup.status).value,
            "updatedAt": timestamp.isoformat(),
        }
        topics = [user_topic(pickup.customer_id)]
        if pickup.delivery_partner_id:
            topics.append(delivery_topic(pickup.delivery_partner_id))
        topics.append(role_topic(Role.ADMIN))
        for topic in topics:
            await self._emit(topic, "pickup:status_update", payload)


def get_notifier(request: Request) -> OrderNotifier:
    """FastAPI dependency binding a notifier to the app's socket hub."""
    return OrderNotifier(request.app.state.hub)
