"""Movement event produced by the ingestion broker."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class MovementEvent:
    """A single train movement event, keyed by station code once resolved."""

    location_code: str | None
    location_identifier: str | None
    received_at: datetime
    payload: dict[str, Any]

    def rekeyed(self, code: str) -> "MovementEvent":
        """Return a copy keyed by the resolved station code."""
        return replace(self, location_code=code)
