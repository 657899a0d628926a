"""Time-to-live cache for aggregation results and bulk lookup tables."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from rail_live.domain.contracts.result_cache import ResultCacheProtocol
from rail_live.domain.models.cache_entry import CacheEntry

logger = logging.getLogger(__name__)


class TTLCache(ResultCacheProtocol):
    """In-memory cache whose entries expire purely by elapsed time.

    Entries are never invalidated early. Expired entries are dropped on read, and
    writes sweep out every expired entry at most once per default TTL.
    """

    def __init__(
        self,
        default_ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl_seconds: TTL used when set() is called without one.
            clock: Monotonic time source, injectable for tests.
        """
        if default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be positive")
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()
        self._next_sweep_at = clock() + default_ttl_seconds

    def get(self, key: str) -> Any | None:
        """Get a live cached value, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store a value until its TTL elapses."""
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=now + ttl)
            sweep = now >= self._next_sweep_at
            if sweep:
                self._next_sweep_at = now + self.default_ttl_seconds
        if sweep:
            self.purge_expired()

    def purge_expired(self) -> int:
        """Drop every expired entry.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
