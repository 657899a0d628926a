"""Starlette application exposing aggregated rail data and the live movement stream."""

from __future__ import annotations

import asyncio
import hmac
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from rail_live.adapters.web.rate_limit_middleware import RateLimitMiddleware
from rail_live.domain.errors import (
    ConfigurationMissing,
    InvalidRequest,
    RailDataError,
    Unauthorized,
)
from rail_live.domain.models.cache_keys import (
    disruptions_cache_key,
    service_cache_key,
    station_cache_key,
)
from rail_live.domain.models.station_board_request import (
    StationBoardRequest,
    normalize_station_code,
)

if TYPE_CHECKING:
    from rail_live.adapters.ingestion.movement_broker import MovementBroker
    from rail_live.adapters.web.broadcasters.event_broadcaster import EventBroadcaster
    from rail_live.domain.contracts.rail_data_service import RailDataServiceProtocol
    from rail_live.domain.contracts.request_rate_limiter import RequestRateLimiterProtocol
    from rail_live.domain.contracts.station_event_cache import StationEventCacheProtocol
    from rail_live.domain.ports.location_lookup import LocationLookup

logger = logging.getLogger(__name__)

INTERNAL_TOKEN_HEADER = "x-internal-token"
DEFAULT_RECENT_LIMIT = 50

_json_adapter: TypeAdapter[Any] = TypeAdapter(Any)


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses, models and datetimes into JSON-compatible values."""
    return _json_adapter.dump_python(value, mode="json")


def error_response(error: RailDataError) -> JSONResponse:
    """Structured error envelope, status taken from the error kind."""
    return JSONResponse(
        {"success": False, "error": error.to_details().model_dump()},
        status_code=error.status_code,
    )


def invalid_request(error: ValueError) -> InvalidRequest:
    """Turn a validation failure into an InvalidRequest with a short message."""
    if isinstance(error, ValidationError):
        first = error.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{location}: {first['msg']}" if location else first["msg"]
        return InvalidRequest(message)
    return InvalidRequest(str(error))


def _int_param(request: Request, name: str, default: int | None = None) -> int | None:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidRequest(f"{name} must be an integer") from None


def board_request_from_query(request: Request) -> StationBoardRequest:
    """Build a board request from the path code and query parameters.

    Raises:
        InvalidRequest: A parameter is malformed or out of range.
    """
    params: dict[str, Any] = {"location_code": request.path_params["code"]}
    optional = {
        "row_limit": _int_param(request, "rows"),
        "filter_code": request.query_params.get("filter"),
        "filter_type": request.query_params.get("filterType"),
        "time_offset": _int_param(request, "offset"),
        "time_window": _int_param(request, "window"),
    }
    params.update({k: v for k, v in optional.items() if v is not None})
    try:
        return StationBoardRequest(**params)
    except ValidationError as e:
        raise invalid_request(e) from e


class RailLiveWebApp:
    """HTTP and websocket surface over the aggregator, event cache and broadcaster."""

    def __init__(
        self,
        rail_data: RailDataServiceProtocol,
        event_cache: StationEventCacheProtocol,
        broadcaster: EventBroadcaster,
        broker: MovementBroker | None = None,
        corpus_lookup: LocationLookup | None = None,
        internal_token: str | None = None,
        rate_limiter: RequestRateLimiterProtocol | None = None,
    ) -> None:
        """Initialize the web application.

        Args:
            rail_data: Aggregated rail data operations.
            event_cache: Per-station ring buffer of movement events.
            broadcaster: Fan-out of live movement frames.
            broker: Movement broker, when ingestion is configured.
            corpus_lookup: TIPLOC lookup served on the internal endpoint.
            internal_token: Token guarding the internal endpoint.
            rate_limiter: Request limiter; no limiting when None.
        """
        self.rail_data = rail_data
        self.event_cache = event_cache
        self.broadcaster = broadcaster
        self.broker = broker
        self.corpus_lookup = corpus_lookup
        self.internal_token = internal_token
        self.rate_limiter = rate_limiter

    def build_app(self) -> Starlette:
        """Create the Starlette application with all routes."""
        routes = [
            Route("/api/departures/{code}", self.departures, methods=["GET"]),
            Route("/api/services/{service_id}", self.service_details, methods=["GET"]),
            Route("/api/stations/{code}/recent", self.recent_events, methods=["GET"]),
            Route("/api/stations/{code}", self.station_info, methods=["GET"]),
            Route("/api/disruptions", self.disruptions, methods=["GET"]),
            Route("/health", self.health, methods=["GET"]),
            Route("/healthz", self.healthz, methods=["GET"]),
            Route("/internal/corpus/lookup", self.corpus_lookup_endpoint, methods=["GET"]),
            WebSocketRoute("/ws", self.movement_stream),
        ]
        middleware = []
        if self.rate_limiter is not None:
            middleware.append(Middleware(RateLimitMiddleware, limiter=self.rate_limiter))
        return Starlette(routes=routes, middleware=middleware)

    async def _respond(
        self, operation: Callable[[], Awaitable[Any]], cache_key: str | None = None
    ) -> JSONResponse:
        """Run an operation and wrap its result or failure in the response envelope."""
        cached = cache_key is not None and self.rail_data.is_cached(cache_key)
        try:
            data = await operation()
        except RailDataError as e:
            logger.info(f"Request failed with {e.code}: {e.message}")
            return error_response(e)
        except Exception as e:
            logger.exception(f"Unexpected error serving request: {e}")
            return error_response(RailDataError("Internal server error"))
        return JSONResponse({"success": True, "data": to_jsonable(data), "cached": cached})

    async def departures(self, request: Request) -> JSONResponse:
        try:
            board_request = board_request_from_query(request)
        except InvalidRequest as e:
            return error_response(e)
        return await self._respond(
            lambda: self.rail_data.get_station_board(board_request), board_request.cache_key()
        )

    async def service_details(self, request: Request) -> JSONResponse:
        service_id = request.path_params["service_id"].strip()
        if not service_id:
            return error_response(InvalidRequest("service id is required"))
        return await self._respond(
            lambda: self.rail_data.get_service_details(service_id),
            service_cache_key(service_id),
        )

    async def station_info(self, request: Request) -> JSONResponse:
        try:
            code = normalize_station_code(request.path_params["code"])
        except ValueError as e:
            return error_response(invalid_request(e))
        return await self._respond(
            lambda: self.rail_data.get_station_info(code), station_cache_key(code)
        )

    async def disruptions(self, request: Request) -> JSONResponse:
        try:
            raw_code = request.query_params.get("code")
            code = normalize_station_code(raw_code) if raw_code else None
            limit = _int_param(request, "limit", 20)
        except InvalidRequest as e:
            return error_response(e)
        except ValueError as e:
            return error_response(invalid_request(e))
        if limit is None or limit < 1:
            return error_response(InvalidRequest("limit must be at least 1"))
        return await self._respond(
            lambda: self.rail_data.get_disruptions(code, limit), disruptions_cache_key(code, limit)
        )

    async def recent_events(self, request: Request) -> JSONResponse:
        """Most recent movement events for a station, newest first."""
        code = request.path_params["code"].strip().upper()
        try:
            limit = _int_param(request, "limit", DEFAULT_RECENT_LIMIT)
        except InvalidRequest as e:
            return error_response(e)
        events = self.event_cache.recent(code, limit)
        return JSONResponse({"code": code, "count": len(events), "data": to_jsonable(events)})

    async def health(self, request: Request) -> JSONResponse:
        """Fresh health of every data source plus ingestion status."""
        status = await self.rail_data.get_health_status(refresh=True)
        primary = status.get("primary")
        healthy = primary is not None and primary.available
        body = {
            "status": "ok" if healthy else "degraded",
            "now": datetime.now(UTC).isoformat(),
            **to_jsonable(status),
            "broker": to_jsonable(self.broker.status()) if self.broker else None,
            "subscribers": self.broadcaster.subscriber_count,
        }
        return JSONResponse(body)

    async def healthz(self, request: Request) -> Response:
        """Liveness probe."""
        return Response(content="Ok", media_type="text/plain")

    def _check_internal_token(self, request: Request) -> None:
        if not self.internal_token:
            raise ConfigurationMissing("Internal API token not configured")
        presented = request.headers.get(INTERNAL_TOKEN_HEADER, "")
        if not hmac.compare_digest(presented, self.internal_token):
            raise Unauthorized("Invalid internal token")

    async def corpus_lookup_endpoint(self, request: Request) -> JSONResponse:
        """Resolve a TIPLOC to its CRS code for other deployments."""
        try:
            self._check_internal_token(request)
            if self.corpus_lookup is None or not self.corpus_lookup.is_configured():
                raise ConfigurationMissing("CORPUS lookup not configured")
            tpl = (request.query_params.get("tpl") or "").strip().upper()
            if not tpl:
                raise InvalidRequest("tpl is required")
            crs = await self.corpus_lookup.lookup(tpl)
        except RailDataError as e:
            return error_response(e)
        return JSONResponse({"success": True, "tpl": tpl, "crs": crs})

    async def movement_stream(self, websocket: WebSocket) -> None:
        """Send a hello frame, then every movement frame until the client goes away."""
        await websocket.accept()
        queue = self.broadcaster.subscribe()
        try:
            await websocket.send_json({"type": "hello", "now": datetime.now(UTC).isoformat()})

            async def pump() -> None:
                while True:
                    frame = await queue.get()
                    await websocket.send_json(frame)

            async def drain() -> None:
                while True:
                    message = await websocket.receive()
                    if message["type"] == "websocket.disconnect":
                        return

            tasks = {asyncio.create_task(pump()), asyncio.create_task(drain())}
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            for task in done:
                error = task.exception()
                if error is not None and not isinstance(error, WebSocketDisconnect):
                    logger.warning(f"Websocket stream ended with error: {error!r}")
        except WebSocketDisconnect:
            logger.debug("Websocket client disconnected")
        finally:
            self.broadcaster.unsubscribe(queue)
