"""Decoding of Push Port movement messages."""

import json
from typing import Any

from rail_live.domain.errors import ParseError


def decode_message(value: bytes | str | None) -> list[dict[str, Any]]:
    """Decode a message value holding one event object or an array of them.

    Raises:
        ParseError: The value is not UTF-8 JSON, or holds neither an object nor an array.
    """
    if value is None:
        return []
    try:
        text = value.decode("utf-8") if isinstance(value, bytes) else value
        payload = json.loads(text)
    except (UnicodeDecodeError, ValueError) as e:
        raise ParseError(f"Undecodable movement message: {e}") from e

    if isinstance(payload, dict):
        return [payload]
    if isinstance(payload, list):
        return [event for event in payload if isinstance(event, dict)]
    raise ParseError(f"Movement message is a {type(payload).__name__}, not an event")


def event_body(event: dict[str, Any]) -> dict[str, Any]:
    """The event's ``body`` when present, else the event itself."""
    body = event.get("body")
    return body if isinstance(body, dict) else event


def _nested(body: dict[str, Any], container: str, key: str) -> Any:
    inner = body.get(container)
    return inner.get(key) if isinstance(inner, dict) else None


def _as_code(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip().upper()
    return None


def extract_location_code(body: dict[str, Any]) -> str | None:
    """Public station code carried directly by the event, if any."""
    return (
        _as_code(body.get("loc_crs"))
        or _as_code(body.get("crs"))
        or _as_code(_nested(body, "location", "crs"))
    )


def extract_location_identifier(body: dict[str, Any]) -> str | None:
    """TIPLOC carried by the event, if any."""
    return (
        _as_code(_nested(body, "Location", "tpl"))
        or _as_code(body.get("tpl"))
        or _as_code(_nested(body, "location", "tpl"))
    )
