"""Inbound request rate limiting."""

from .request_rate_limiter import RequestRateLimiter

__all__ = ["RequestRateLimiter"]
