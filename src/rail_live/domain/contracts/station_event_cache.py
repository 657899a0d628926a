"""Protocol for the per-station movement event cache."""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from rail_live.domain.models.movement_event import MovementEvent


class StationEventCacheProtocol(Protocol):
    """Bounded, most-recent-first movement events per station code."""

    def append(self, event: "MovementEvent") -> None:
        """Add an event to its station's buffer, evicting the oldest on overflow."""
        ...

    def recent(self, code: str, limit: int | None = None) -> list["MovementEvent"]:
        """Get the most recent events for a station, newest first."""
        ...
