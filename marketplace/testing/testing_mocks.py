from typing import Any, Dict, List, Tuple

from marketplace.realtime.notifier import OrderNotifier


class RecordingPublisher:
    """In-memory stand-in for the topic hub: remembers every publish."""

    def __init__(self):
        self.published: List[Tuple[str, str, Dict[str, Any]]] = []

    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        self.published.append((topic, event, payload))

    def topics_for(self, event: str) -> List[str]:
        return [topic for topic, name, _ in self.published if name == event]

    def events_on(self, topic: str) -> List[str]:
        return [name for t, name, _ in self.published if t == topic]

    def payloads(self, event: str) -> List[Dict[str, Any]]:
        return [payload for _, name, payload in self.published if name == event]

    def clear(self) -> None:
        self.published.clear()


class FailingPublisher:
    """Publisher whose channel layer is down."""

    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        raise ConnectionError("channel layer unavailable")


def recording_notifier() -> Tuple[OrderNotifier, RecordingPublisher]:
    publisher = RecordingPublisher()
    return OrderNotifier(publisher), publisher
