"""Parser turning Darwin SOAP results into domain objects.

Parsing is pure: the same result always yields equal boards. zeep results are first
serialized into nested dicts, then ``as_list`` normalizes elements that Darwin sends
either once or repeated.
"""

import logging
import re
from datetime import UTC, datetime, timedelta
from typing import Any

from zeep.helpers import serialize_object

from rail_live.adapters.darwin_api.constants import CANCELLED, ON_TIME
from rail_live.domain.errors import NotFound, ParseError
from rail_live.domain.models.departure import Departure, Location
from rail_live.domain.models.service_details import CallingPoint, ServiceDetails
from rail_live.domain.models.station_board import EnhancedStationBoard
from rail_live.domain.models.station_message import StationMessage

logger = logging.getLogger(__name__)

_HTML_TAG_PATTERN = re.compile(r"<[^>]+>")
_EXCESS_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")
_HHMM_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

# What a malformed service can raise while being converted
_SERVICE_ERRORS = (ParseError, ValueError, TypeError, AttributeError, KeyError)


def to_dict(result: Any) -> Any:
    """Serialize a zeep result object into plain dicts and lists."""
    return serialize_object(result, dict)


def as_list(value: Any) -> list[Any]:
    """Normalize a single item, a list of items, or nothing into a list."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def _text(value: Any) -> str | None:
    """Text of a leaf. zeep keeps the text of an element with attributes in ``_value_1``."""
    if isinstance(value, dict):
        value = value.get("_value_1")
    if value is None or isinstance(value, dict | list):
        return None
    text = str(value).strip()
    return text or None


def _flag(value: Any) -> bool:
    return value is True or _text(value) == "true"


def parse_generated_at(value: datetime | str | None) -> datetime:
    """Parse Darwin's generatedAt timestamp, which may carry seven fractional digits."""
    if not value:
        return datetime.now(UTC)
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(_EXCESS_FRACTION_PATTERN.sub(r"\1", value))
        except ValueError as e:
            raise ParseError(f"Invalid generatedAt timestamp: {value}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def resolve_clock_time(hhmm: str, reference: datetime) -> datetime:
    """Resolve an ``HH:MM`` time to the datetime nearest the reference.

    Boards straddle midnight, so a time more than twelve hours before the reference
    belongs to the next day, and one more than twelve hours after to the previous day.
    """
    match = _HHMM_PATTERN.match(hhmm.strip())
    if match is None:
        raise ParseError(f"Invalid time: {hhmm}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ParseError(f"Invalid time: {hhmm}")

    candidate = reference.replace(hour=hour, minute=minute, second=0, microsecond=0)
    delta = candidate - reference
    if delta < timedelta(hours=-12):
        candidate += timedelta(days=1)
    elif delta > timedelta(hours=12):
        candidate -= timedelta(days=1)
    return candidate


def _locations(service: dict[str, Any], key: str, service_id: str) -> list[Any]:
    """Location list of an origin or destination container."""
    container = service.get(key)
    if container is None:
        return []
    if not isinstance(container, dict):
        raise ParseError(f"Service {service_id} has a malformed {key}")
    return as_list(container.get("location"))


def _location(raw: Any, service_id: str, role: str) -> Location:
    if not isinstance(raw, dict):
        raise ParseError(f"Service {service_id} has a malformed {role} location")
    name = _text(raw.get("locationName"))
    if not name:
        raise ParseError(f"Service {service_id} has no {role} name")
    return Location(name=name, code=_text(raw.get("crs")) or "")


def _length(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = _text(value)
    return int(text) if text and text.isdigit() else None


def parse_service(service: dict[str, Any], generated_at: datetime) -> Departure:
    """Convert one raw service into a Departure.

    Origin is the first origin location, destination the last destination location.

    Raises:
        ParseError: When a required field is missing or malformed.
    """
    service_id = _text(service.get("serviceID"))
    if not service_id:
        raise ParseError("Service without serviceID")

    destinations = _locations(service, "destination", service_id)
    if not destinations:
        raise ParseError(f"Service {service_id} has no destination")
    origins = _locations(service, "origin", service_id)
    if not origins:
        raise ParseError(f"Service {service_id} has no origin")

    std = _text(service.get("std"))
    if not std:
        raise ParseError(f"Service {service_id} has no scheduled departure")

    estimated = _text(service.get("etd")) or ON_TIME

    return Departure(
        service_id=service_id,
        operator=_text(service.get("operator")) or "Unknown",
        operator_code=_text(service.get("operatorCode")) or "",
        origin=_location(origins[0], service_id, "origin"),
        destination=_location(destinations[-1], service_id, "destination"),
        scheduled_time=resolve_clock_time(std, generated_at),
        estimated=estimated,
        platform=_text(service.get("platform")),
        service_kind=_text(service.get("serviceType")) or "train",
        is_cancelled=_flag(service.get("isCancelled")) or estimated == CANCELLED,
        delay_reason=_text(service.get("delayReason")),
        cancel_reason=_text(service.get("cancelReason")),
        length=_length(service.get("length")),
    )


def parse_messages(result: dict[str, Any]) -> tuple[StationMessage, ...]:
    """Parse NRCC messages, stripping the HTML Darwin embeds in them."""
    container = result.get("nrccMessages")
    if not isinstance(container, dict):
        return ()

    messages = []
    for raw in as_list(container.get("message")):
        text = _text(raw)
        if not text:
            continue
        severity = _text(raw.get("severity")) if isinstance(raw, dict) else None
        category = _text(raw.get("category")) if isinstance(raw, dict) else None
        messages.append(
            StationMessage(
                message=_HTML_TAG_PATTERN.sub("", text).strip(),
                severity=(severity or "info").lower(),
                category=(category or "general").lower(),
            )
        )
    return tuple(messages)


def parse_departure_board(result: Any) -> EnhancedStationBoard:
    """Parse a GetDepBoardWithDetails result.

    Individual services that cannot be parsed are dropped with a warning.

    Raises:
        ParseError: The response has no recognizable board result.
    """
    result = to_dict(result)
    if not isinstance(result, dict):
        raise ParseError("No departure board result in SOAP response")

    generated_at = parse_generated_at(result.get("generatedAt"))
    code = _text(result.get("crs")) or "UNK"
    location_name = _text(result.get("locationName"))

    train_services = result.get("trainServices")
    raw_services = as_list(train_services.get("service")) if isinstance(train_services, dict) else []

    departures = []
    for index, raw in enumerate(raw_services):
        try:
            if not isinstance(raw, dict):
                raise ParseError("Service is not a structured element")
            departures.append(parse_service(raw, generated_at))
        except _SERVICE_ERRORS as e:
            logger.warning(f"Dropping unparseable service {index} at {code}: {e}")

    logger.debug(f"Parsed {len(departures)}/{len(raw_services)} services for {code}")

    return EnhancedStationBoard(
        location_name=location_name or f"Station {code}",
        code=code,
        generated_at=generated_at,
        departures=tuple(departures),
        messages=parse_messages(result),
        filter_location_name=_text(result.get("filterLocationName")),
        filter_code=_text(result.get("filtercrs")),
    )


def _calling_points(container: Any) -> tuple[CallingPoint, ...]:
    """Flatten a previous/subsequent calling points container.

    Darwin nests ``callingPointList`` (one per portion of a splitting train) around
    ``callingPoint`` elements; both levels may be single or repeated.
    """
    if not isinstance(container, dict):
        return ()

    points = []
    for point_list in as_list(container.get("callingPointList")):
        if not isinstance(point_list, dict):
            continue
        for raw in as_list(point_list.get("callingPoint")):
            if not isinstance(raw, dict):
                continue
            points.append(
                CallingPoint(
                    location_name=_text(raw.get("locationName")) or "",
                    code=_text(raw.get("crs")) or "",
                    scheduled=_text(raw.get("st")) or "",
                    estimated=_text(raw.get("et")),
                    actual=_text(raw.get("at")),
                )
            )
    return tuple(points)


def parse_service_details(result: Any, service_id: str) -> ServiceDetails:
    """Parse a GetServiceDetails result.

    Raises:
        NotFound: Darwin returned no details for the service.
    """
    result = to_dict(result)
    if not isinstance(result, dict):
        raise NotFound(f"No details found for service {service_id}")

    estimated = _text(result.get("etd")) or _text(result.get("atd"))
    return ServiceDetails(
        service_id=service_id,
        operator=_text(result.get("operator")) or "Unknown",
        operator_code=_text(result.get("operatorCode")) or "",
        location_name=_text(result.get("locationName")) or "",
        code=_text(result.get("crs")) or "",
        scheduled_departure=_text(result.get("std")),
        estimated_departure=estimated,
        platform=_text(result.get("platform")),
        is_cancelled=_flag(result.get("isCancelled")),
        delay_reason=_text(result.get("delayReason")),
        cancel_reason=_text(result.get("cancelReason")),
        previous_calling_points=_calling_points(result.get("previousCallingPoints")),
        subsequent_calling_points=_calling_points(result.get("subsequentCallingPoints")),
    )
