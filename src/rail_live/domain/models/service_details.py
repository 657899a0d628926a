"""Service detail and live tracking domain models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CallingPoint:
    """A stop on a service's route."""

    location_name: str
    code: str
    scheduled: str
    estimated: str | None = None
    actual: str | None = None


@dataclass(frozen=True)
class TrackedStop:
    """A stop as reported by live tracking."""

    name: str
    code: str
    platform: str | None = None
    scheduled: str | None = None
    expected: str | None = None


@dataclass(frozen=True)
class ServiceTracking:
    """Live position of a service from the enhancement feed."""

    service_id: str
    operator: str
    current_location: TrackedStop | None = None
    next_stops: tuple[TrackedStop, ...] = ()
    headcode: str | None = None
    status: str | None = None
    last_updated: datetime | None = None


@dataclass(frozen=True)
class ServiceDetails:
    """Details of a single service, optionally enriched with live tracking."""

    service_id: str
    operator: str
    operator_code: str
    location_name: str
    code: str
    scheduled_departure: str | None = None
    estimated_departure: str | None = None
    platform: str | None = None
    is_cancelled: bool = False
    delay_reason: str | None = None
    cancel_reason: str | None = None
    previous_calling_points: tuple[CallingPoint, ...] = ()
    subsequent_calling_points: tuple[CallingPoint, ...] = ()
    tracking: ServiceTracking | None = None
    data_source: str = "primary"
