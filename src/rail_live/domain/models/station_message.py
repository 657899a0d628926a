"""Station message domain model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class StationMessage:
    """An NRCC message attached to a station board."""

    message: str
    severity: str = "info"
    category: str = "general"
