"""Protocol for inbound request rate limiting."""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from rail_live.domain.models.rate_limit_result import RateLimitResult


class RequestRateLimiterProtocol(Protocol):
    """Fixed-window quota per caller identity and operation key."""

    async def consume(self, identity: str, operation: str) -> "RateLimitResult":
        """Count one request and report whether it is allowed."""
        ...
