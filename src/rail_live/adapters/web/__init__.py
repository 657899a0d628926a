"""Web adapters: HTTP API, live movement websocket and rate limiting."""

from .app import RailLiveWebApp, error_response, to_jsonable
from .broadcasters import EventBroadcaster
from .rate_limit_middleware import RateLimitMiddleware, extract_client_ip
from .server import WebServer

__all__ = [
    "EventBroadcaster",
    "RailLiveWebApp",
    "RateLimitMiddleware",
    "WebServer",
    "error_response",
    "extract_client_ip",
    "to_jsonable",
]
