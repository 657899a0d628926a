"""Bounded per-station movement event cache."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import TYPE_CHECKING

from rail_live.domain.contracts.station_event_cache import StationEventCacheProtocol

if TYPE_CHECKING:
    from rail_live.domain.models.movement_event import MovementEvent

logger = logging.getLogger(__name__)

UNKNOWN_STATION = "UNKNOWN"


class StationEventCache(StationEventCacheProtocol):
    """Ring buffer of the most recent movement events per station code.

    Each station holds at most ``capacity`` events, newest first. Inserting into a
    full buffer evicts the oldest event.
    """

    def __init__(self, capacity: int = 200) -> None:
        """Initialize the cache.

        Args:
            capacity: Maximum number of events kept per station.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._buffers: dict[str, deque[MovementEvent]] = {}
        self._lock = threading.Lock()

    def append(self, event: MovementEvent) -> None:
        """Add an event to its station's buffer, evicting the oldest on overflow."""
        code = event.location_code or UNKNOWN_STATION
        with self._lock:
            buffer = self._buffers.get(code)
            if buffer is None:
                buffer = deque(maxlen=self.capacity)
                self._buffers[code] = buffer
            buffer.appendleft(event)

    def recent(self, code: str, limit: int | None = None) -> list[MovementEvent]:
        """Get the most recent events for a station, newest first.

        Args:
            code: Station code (case-insensitive).
            limit: Optional maximum number of events to return.
        """
        with self._lock:
            buffer = self._buffers.get(code.upper())
            if buffer is None:
                return []
            events = list(buffer)
        return events[:limit] if limit is not None else events

    def station_codes(self) -> set[str]:
        """Codes of all stations with cached events."""
        with self._lock:
            return set(self._buffers.keys())
