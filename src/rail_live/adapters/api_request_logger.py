"""Logging of outbound upstream calls, switched on with RAIL_LIVE_LOG_REQUESTS=true.

Darwin carries its access token inside the SOAP envelope and the internal lookup
sends a token header, so both are masked before anything reaches the log.
"""

import json
import logging
import os
import re
from typing import Any
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

REDACTED = "***REDACTED***"

_SECRET_HEADERS = frozenset({"authorization", "cookie", "x-api-key", "x-internal-token"})
_SECRET_PARAMS = frozenset({"token", "password", "api_key"})
_SOAP_TOKEN = re.compile(r"(<(?:\w+:)?TokenValue>).*?(</(?:\w+:)?TokenValue>)", re.DOTALL)


def should_log_requests() -> bool:
    """Whether RAIL_LIVE_LOG_REQUESTS is set to true."""
    return os.getenv("RAIL_LIVE_LOG_REQUESTS", "").lower() == "true"


def mask_envelope(envelope: str) -> str:
    """Replace the SOAP access token value."""
    return _SOAP_TOKEN.sub(rf"\g<1>{REDACTED}\g<2>", envelope)


def describe_request(
    method: str,
    url: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    payload: Any = None,
) -> str:
    """Multi-line description of a request with every credential masked."""
    if params:
        query = urlencode(
            sorted((k, REDACTED if k.lower() in _SECRET_PARAMS else v) for k, v in params.items())
        )
        url = f"{url}{'&' if '?' in url else '?'}{query}"
    lines = [f"{method} {url}"]

    if headers:
        masked = {k: REDACTED if k.lower() in _SECRET_HEADERS else v for k, v in headers.items()}
        lines.append(f"Headers: {json.dumps(masked, indent=2)}")

    if isinstance(payload, str):
        lines.append(f"Payload: {mask_envelope(payload)}")
    elif payload is not None:
        lines.append(f"Payload: {json.dumps(payload, indent=2, default=str)}")

    return "\n".join(lines)


def log_api_request(
    method: str,
    url: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    payload: Any = None,
) -> None:
    """Log an upstream request when request logging is enabled."""
    if not should_log_requests():
        return
    logger.info("API Request:\n" + describe_request(method, url, params, headers, payload))
