"""Protocol for the aggregation result cache."""

from typing import Any, Protocol


class ResultCacheProtocol(Protocol):
    """Time-bounded cache of aggregation results."""

    def get(self, key: str) -> Any | None:
        """Get a live cached value, or None when missing or expired."""
        ...

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store a value until its TTL elapses."""
        ...
