"""Rate limiting middleware for Starlette."""

import logging
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from rail_live.domain.contracts.request_rate_limiter import RequestRateLimiterProtocol
from rail_live.domain.errors import RateLimited

logger = logging.getLogger(__name__)

EXEMPT_PATHS = frozenset({"/healthz"})


def extract_client_ip(request: Request) -> str:
    """Extract client IP address from request, supporting X-Forwarded-For header.

    X-Forwarded-For may contain several addresses (client, proxy1, proxy2); the
    first one is the original client.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    if request.client and request.client.host:
        return request.client.host

    logger.warning("Could not determine client IP, using 'unknown'")
    return "unknown"


def operation_key(path: str) -> str:
    """Logical operation a path belongs to, e.g. ``/api/departures/KGX`` -> ``departures``."""
    parts = [p for p in path.split("/") if p]
    if len(parts) >= 2 and parts[0] in ("api", "internal"):
        return parts[1]
    return parts[0] if parts else "root"


def rate_limited_response(error: RateLimited) -> JSONResponse:
    """429 envelope with a Retry-After hint."""
    return JSONResponse(
        {"success": False, "error": error.to_details().model_dump()},
        status_code=error.status_code,
        headers={"Retry-After": str(max(1, int(error.retry_after_seconds + 0.999)))},
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Enforces the request quota per client IP and operation."""

    def __init__(
        self,
        app: Callable,
        limiter: RequestRateLimiterProtocol,
    ) -> None:
        """Initialize rate limiting middleware.

        Args:
            app: The ASGI application to wrap.
            limiter: Fixed-window limiter deciding each request.
        """
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and enforce rate limiting."""
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = extract_client_ip(request)
        result = await self.limiter.consume(client_ip, operation_key(request.url.path))
        if not result.allowed:
            logger.warning(
                f"Rate limit exceeded for IP {client_ip} on {request.url.path}, "
                f"retry after {result.retry_after_seconds:.0f} seconds"
            )
            return rate_limited_response(RateLimited(result.retry_after_seconds))

        response: Response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response
