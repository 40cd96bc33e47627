"""
Topic registry for live WebSocket connections.

Publishing is best effort: a topic with no subscribers drops the event, and a
connection that fails to receive is unsubscribed. Nothing is queued for
clients that reconnect later; they re-read state over HTTP.
"""
import json
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Protocol, Set

from fastapi import WebSocket

from marketplace.domain.actors import Actor, Role

log = logging.getLogger("marketplace.hub")


class Publisher(Protocol):
    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        ...


def role_topic(role) -> str:
    return f"role:{Role(role).value}"


def user_topic(user_id) -> str:
    return f"user:{user_id}"


def restaurant_topic(user_id) -> str:
    return f"restaurant:{user_id}"


def delivery_topic(user_id) -> str:
    return f"delivery:{user_id}"


def topics_for(actor: Actor) -> List[str]:
    """Topics a freshly authenticated connection joins."""
    topics = [role_topic(actor.role), user_topic(actor.id)]
    if actor.role == Role.RESTAURANT:
        topics.append(restaurant_topic(actor.id))
    if actor.role == Role.DELIVERY:
        topics.append(delivery_topic(actor.id))
    return topics


def encode_frame(event: str, payload: Dict[str, Any]) -> str:
    return json.dumps({"event": event, "data": payload}, default=str)


class TopicHub:
    def __init__(self):
        self._subscribers: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._memberships: Dict[WebSocket, Set[str]] = defaultdict(set)

    def join(self, websocket: WebSocket, topics: Iterable[str]) -> None:
        for topic in topics:
            self._subscribers[topic].add(websocket)
            self._memberships[websocket].add(topic)

    def leave(self, websocket: WebSocket) -> None:
        for topic in self._memberships.pop(websocket, set()):
            members = self._subscribers.get(topic)
            if members is None:
                continue
            members.discard(websocket)
            if not members:
                del self._subscribers[topic]

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        members = list(self._subscribers.get(topic, ()))
        if not members:
            log.debug(f"No subscribers on {topic}; dropped {event}")
            return

        message = encode_frame(event, payload)
        for websocket in members:
            try:
                await websocket.send_text(message)
            except Exception as e:
                log.warning(f"Dropping subscriber on {topic} after failed send of {event}: {e}")
                self.leave(websocket)
