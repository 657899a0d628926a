"""Resolves provider location identifiers (TIPLOCs) to public station codes."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING

from rail_live.adapters.location.tiploc_table import BUILTIN_TIPLOC_TO_CRS, load_override_map

if TYPE_CHECKING:
    from pathlib import Path

    from rail_live.adapters.location.mapping_persister import MappingPersister
    from rail_live.domain.ports.location_lookup import LocationLookup

logger = logging.getLogger(__name__)


class LocationCodeResolver:
    """Static table, then override file, then learned mappings, then remote lookup.

    Concurrent remote lookups for the same identifier share one in-flight task.
    """

    def __init__(
        self,
        lookup: LocationLookup | None = None,
        override_path: Path | None = None,
        persister: MappingPersister | None = None,
        builtin: dict[str, str] | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            lookup: Remote lookup used on a miss; resolution is local-only without it.
            override_path: Optional JSON map merged over the built-in table.
            persister: Receives every successful remote resolution.
            builtin: Built-in table, defaults to BUILTIN_TIPLOC_TO_CRS.
        """
        self._static = {**(builtin if builtin is not None else BUILTIN_TIPLOC_TO_CRS)}
        self._static.update(load_override_map(override_path))
        self._learned: dict[str, str] = {}
        self._learned_lock = threading.Lock()
        self._lookup = lookup
        self._persister = persister
        self._inflight: dict[str, asyncio.Task[str | None]] = {}
        self.remote_lookups = 0

    def resolve_local(self, identifier: str) -> str | None:
        """Resolve from the static table and learned mappings only."""
        key = identifier.strip().upper()
        if key in self._static:
            return self._static[key]
        with self._learned_lock:
            return self._learned.get(key)

    async def resolve(self, identifier: str | None) -> str | None:
        """Resolve an identifier, falling back to the remote lookup on a miss.

        Returns:
            The station code, or None when nothing knows the identifier.
        """
        if not identifier or not identifier.strip():
            return None
        key = identifier.strip().upper()

        local = self.resolve_local(key)
        if local is not None:
            return local

        if self._lookup is None or not self._lookup.is_configured():
            return None

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._remote_lookup(key))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        return await asyncio.shield(task)

    async def _remote_lookup(self, key: str) -> str | None:
        lookup = self._lookup
        if lookup is None:
            return None
        self.remote_lookups += 1
        try:
            code = await lookup.lookup(key)
        except Exception as e:
            logger.warning(f"Remote lookup for TIPLOC {key} failed: {e}")
            return None

        if code is None:
            logger.debug(f"No station code known for TIPLOC {key}")
            return None

        with self._learned_lock:
            self._learned[key] = code
        if self._persister is not None:
            self._persister.enqueue(key, code)
        logger.info(f"Learned TIPLOC {key} -> {code}")
        return code

    @property
    def learned(self) -> dict[str, str]:
        """Mappings learned from remote lookups during this process."""
        with self._learned_lock:
            return dict(self._learned)
