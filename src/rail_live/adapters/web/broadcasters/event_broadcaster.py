"""Fan-out of live movement frames to websocket subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from rail_live.domain.contracts.event_broadcaster import EventBroadcasterProtocol

logger = logging.getLogger(__name__)


class EventBroadcaster(EventBroadcasterProtocol):
    """Per-subscriber bounded queues.

    Publishing never blocks: when a subscriber's queue is full, its oldest frame
    is dropped to make room, so one slow client cannot hold up ingestion or the
    other subscribers.
    """

    def __init__(self, queue_size: int = 100) -> None:
        """Initialize the broadcaster.

        Args:
            queue_size: Frames buffered per subscriber.
        """
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self.queue_size = queue_size
        self._subscribers: set[asyncio.Queue[dict[str, Any]]] = set()
        self.dropped_frames = 0

    def subscribe(self) -> asyncio.Queue[dict[str, Any]]:
        """Register a subscriber and return its queue."""
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        logger.info(f"Subscriber connected ({len(self._subscribers)} total)")
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict[str, Any]]) -> None:
        """Remove a subscriber."""
        if queue in self._subscribers:
            self._subscribers.discard(queue)
            logger.info(f"Subscriber disconnected ({len(self._subscribers)} total)")

    def publish(self, frame: dict[str, Any]) -> None:
        """Queue a frame for every subscriber."""
        for queue in list(self._subscribers):
            if queue.full():
                queue.get_nowait()
                self.dropped_frames += 1
            queue.put_nowait(frame)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
