"""Rate limit decision."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of consuming one request from a caller's quota."""

    allowed: bool
    remaining: int
    reset_at: datetime
    retry_after_seconds: float = 0.0
