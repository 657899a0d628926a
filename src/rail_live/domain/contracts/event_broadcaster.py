"""Protocol for fanning out live frames to subscribers."""

from typing import Any, Protocol


class EventBroadcasterProtocol(Protocol):
    """Publishes frames to every connected subscriber without blocking the publisher."""

    def publish(self, frame: dict[str, Any]) -> None:
        """Queue a frame for every subscriber."""
        ...

    @property
    def subscriber_count(self) -> int:
        """Number of currently connected subscribers."""
        ...
