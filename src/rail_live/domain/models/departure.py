"""Departure domain model."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Location:
    """A named calling location with its public station code."""

    name: str
    code: str


@dataclass(frozen=True)
class Departure:
    """Represents a single departure from a station board."""

    service_id: str
    operator: str
    operator_code: str
    origin: Location
    destination: Location
    scheduled_time: datetime
    estimated: str  # "HH:MM" or a status token such as "On time", "Delayed", "Cancelled"
    platform: str | None
    service_kind: str
    is_cancelled: bool
    delay_reason: str | None = None
    cancel_reason: str | None = None
    length: int | None = None

    @property
    def has_complete_timing(self) -> bool:
        """Whether scheduled time, estimate and platform are all known."""
        return bool(self.scheduled_time and self.estimated and self.platform)
