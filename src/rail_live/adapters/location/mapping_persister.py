"""Debounced background persistence of learned TIPLOC to CRS mappings."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from typing import TYPE_CHECKING

from rail_live.adapters.location.tiploc_table import load_override_map

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class MappingPersister:
    """Single writer for the override map file.

    Pending mappings arrive over a queue. After the first one, the writer waits
    ``debounce_seconds`` collecting everything else queued, merges the batch over
    the file's current content and replaces the file atomically.
    """

    def __init__(self, path: Path, debounce_seconds: float = 1.0) -> None:
        """Initialize the persister.

        Args:
            path: Override map file to rewrite.
            debounce_seconds: Coalescing window for queued mappings.
        """
        self.path = path
        self.debounce_seconds = debounce_seconds
        self._queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._batch: dict[str, str] = {}
        self.writes = 0

    def enqueue(self, identifier: str, code: str) -> None:
        """Queue a learned mapping for the next write."""
        self._queue.put_nowait((identifier.upper(), code.upper()))

    async def start(self) -> None:
        """Start the writer task."""
        if self._task is not None and not self._task.done():
            logger.warning("Mapping persister already running")
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started mapping persister for {self.path}")

    async def stop(self) -> None:
        """Stop the writer task and flush whatever is still queued."""
        if self._task and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        pending = {**self._batch, **self._drain()}
        self._batch = {}
        if pending:
            await asyncio.to_thread(self._write, pending)
        logger.info("Stopped mapping persister")

    def _drain(self) -> dict[str, str]:
        pending: dict[str, str] = {}
        while True:
            try:
                identifier, code = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return pending
            pending[identifier] = code

    async def _run(self) -> None:
        while True:
            identifier, code = await self._queue.get()
            self._batch[identifier] = code
            await asyncio.sleep(self.debounce_seconds)
            self._batch.update(self._drain())
            pending, self._batch = self._batch, {}
            try:
                await asyncio.to_thread(self._write, pending)
            except OSError as e:
                logger.error(f"Failed to persist {len(pending)} TIPLOC mappings to {self.path}: {e}")

    def _write(self, pending: dict[str, str]) -> None:
        """Merge pending mappings over the file and replace it atomically."""
        merged = {**load_override_map(self.path), **pending}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(merged, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)
        self.writes += 1
        logger.info(f"Persisted {len(pending)} new TIPLOC mappings ({len(merged)} total) to {self.path}")
