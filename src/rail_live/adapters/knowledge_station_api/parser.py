"""Transforms raw Knowledge Station records into domain objects."""

import logging
from datetime import datetime
from typing import Any

from rail_live.domain.errors import ParseError
from rail_live.domain.models.disruption import Disruption, RouteRef
from rail_live.domain.models.service_details import ServiceTracking, TrackedStop
from rail_live.domain.models.station_info import AccessibilityInfo, Coordinates, StationInfo

logger = logging.getLogger(__name__)

SOURCE_NAME = "knowledge-station"

# What a malformed record can raise while being converted
_RECORD_ERRORS = (ParseError, ValueError, TypeError, AttributeError)


def _parse_datetime(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value}")
        return None


def _sequence(raw: dict[str, Any], key: str) -> list[Any]:
    """A list field that may be absent."""
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ParseError(f"Field {key} is not a list")
    return value


def _coordinates(latitude: Any, longitude: Any) -> Coordinates | None:
    if latitude is None or longitude is None:
        return None
    try:
        return Coordinates(latitude=float(latitude), longitude=float(longitude))
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid coordinates: {latitude}, {longitude}") from e


def _code_of(value: Any) -> str:
    """A station code given either as a plain string or as ``{"crs": ...}``."""
    if isinstance(value, dict):
        value = value.get("crs") or value.get("code")
    return str(value).upper() if value else ""


def parse_station_info(raw: dict[str, Any]) -> StationInfo:
    """Full station record from the enrichment feed."""
    code = _code_of(raw.get("crs"))
    name = raw.get("name")
    if not code or not name:
        raise ParseError("Station record missing crs or name")

    coordinates = _coordinates(raw.get("latitude"), raw.get("longitude"))
    access = raw.get("accessibility") or {}
    if not isinstance(access, dict):
        raise ParseError(f"Station {code} has malformed accessibility data")
    contacts = raw.get("contacts") or {}

    return StationInfo(
        code=code,
        name=str(name),
        facilities=tuple(str(f) for f in _sequence(raw, "facilities")),
        accessibility=AccessibilityInfo(
            wheelchair_access=bool(access.get("wheelchairAccess", False)),
            assistance_available=bool(access.get("assistanceAvailable", False)),
            audio_announcements=bool(access.get("audioAnnouncements", False)),
            induction_loop=bool(access.get("inductionLoop", False)),
        ),
        contacts={str(k): str(v) for k, v in contacts.items()} if isinstance(contacts, dict) else {},
        coordinates=coordinates,
        region=raw.get("region"),
        operator=raw.get("operator"),
        source=SOURCE_NAME,
    )


def _tracked_stop(raw: dict[str, Any], current: bool) -> TrackedStop:
    if current:
        expected = raw.get("actualDeparture") or raw.get("scheduledDeparture")
        scheduled = raw.get("scheduledDeparture")
    else:
        expected = raw.get("actualArrival") or raw.get("scheduledArrival")
        scheduled = raw.get("scheduledArrival")
    return TrackedStop(
        name=str(raw.get("name", "")),
        code=_code_of(raw.get("crs")),
        platform=raw.get("platform"),
        scheduled=scheduled,
        expected=expected,
    )


def parse_service_tracking(raw: dict[str, Any], service_id: str) -> ServiceTracking:
    """Live tracking: first location is where the train is, the next three are upcoming stops."""
    locations = [loc for loc in raw.get("locations") or [] if isinstance(loc, dict)]
    return ServiceTracking(
        service_id=str(raw.get("uid") or service_id),
        operator=str(raw.get("operator", "Unknown")),
        current_location=_tracked_stop(locations[0], current=True) if locations else None,
        next_stops=tuple(_tracked_stop(loc, current=False) for loc in locations[1:4]),
        headcode=raw.get("headcode"),
        status=raw.get("status"),
        last_updated=_parse_datetime(raw.get("updated")),
    )


def parse_disruption(raw: Any) -> Disruption:
    """One disruption record.

    Raises:
        ParseError: The record lacks an id or title, or a list field is not a list.
    """
    if not isinstance(raw, dict) or not raw.get("id") or not raw.get("title"):
        raise ParseError("Disruption record missing id or title")

    routes = tuple(
        RouteRef(origin=_code_of(route.get("origin")), destination=_code_of(route.get("destination")))
        for route in _sequence(raw, "affectedRoutes")
        if isinstance(route, dict)
    )
    return Disruption(
        id=str(raw["id"]),
        title=str(raw["title"]),
        description=str(raw.get("description", "")),
        severity=str(raw.get("severity", "minor")),
        category=str(raw.get("category", "other")),
        status=str(raw.get("status", "active")),
        affected_routes=routes,
        affected_operators=tuple(str(o) for o in _sequence(raw, "affectedOperators")),
        affected_services=tuple(str(s) for s in _sequence(raw, "affectedServices")),
        valid_from=_parse_datetime(raw.get("validFrom")),
        valid_to=_parse_datetime(raw.get("validTo")),
        source=SOURCE_NAME,
    )


def parse_disruptions(raw_list: list[Any]) -> list[Disruption]:
    """All well-formed disruptions; malformed records are dropped with a warning."""
    disruptions = []
    for index, raw in enumerate(raw_list):
        try:
            disruptions.append(parse_disruption(raw))
        except _RECORD_ERRORS as e:
            logger.warning(f"Dropping malformed disruption {index}: {e}")
    return disruptions
