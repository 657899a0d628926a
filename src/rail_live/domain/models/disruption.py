"""Disruption domain model."""

from dataclasses import dataclass
from datetime import datetime

from rail_live.domain.models.station_message import StationMessage


@dataclass(frozen=True)
class RouteRef:
    """A route affected by a disruption, identified by its end points."""

    origin: str
    destination: str


@dataclass(frozen=True)
class Disruption:
    """A service disruption reported by the enhancement feed."""

    id: str
    title: str
    description: str
    severity: str
    category: str
    status: str
    affected_routes: tuple[RouteRef, ...] = ()
    affected_operators: tuple[str, ...] = ()
    affected_services: tuple[str, ...] = ()
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    source: str = "knowledge-station"

    def touches(self, code: str) -> bool:
        """Whether any affected route starts or ends at the given station code."""
        return any(route.origin == code or route.destination == code for route in self.affected_routes)


@dataclass(frozen=True)
class DisruptionSummary:
    """Everything known about current disruption, optionally scoped to one station."""

    code: str | None
    messages: tuple[StationMessage, ...] = ()
    disruptions: tuple[Disruption, ...] = ()
