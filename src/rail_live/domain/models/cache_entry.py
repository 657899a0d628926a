"""Generic TTL cache entry."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the monotonic time at which it expires."""

    value: T
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Whether the entry has expired at the given monotonic time."""
        return now >= self.expires_at
