"""Data source manager: adapter registry, health tracking, fallback and enhancement."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TypeVar

from rail_live.domain.errors import CapabilityUnsupported, NoPrimarySource
from rail_live.domain.models.data_source_health import DataSourceHealth

if TYPE_CHECKING:
    from rail_live.domain.ports import DataSourceAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class DataSourceConfig:
    """Strategy for choosing between data sources."""

    primary_source: str = "darwin"
    fallback_enabled: bool = True
    enhancement_enabled: bool = True
    enhancement_timeout_seconds: float = 3.0


class DataSourceManager:
    """Holds the adapter registry and runs primary-with-fallback/enhancement calls."""

    def __init__(
        self,
        adapters: list[DataSourceAdapter],
        config: DataSourceConfig | None = None,
    ) -> None:
        """Initialize with the adapters to manage.

        Args:
            adapters: Adapters to register, keyed by their name.
            config: Strategy configuration, defaults to Darwin-first with fallback and enhancement.
        """
        self._config = config or DataSourceConfig()
        self._adapters: dict[str, DataSourceAdapter] = {}
        self._health: dict[str, DataSourceHealth] = {}
        self._health_lock = threading.Lock()
        for adapter in adapters:
            self.register(adapter)

    @property
    def config(self) -> DataSourceConfig:
        """Current strategy configuration."""
        return self._config

    def register(self, adapter: DataSourceAdapter) -> None:
        """Register an adapter with a fresh, unavailable health record."""
        self._adapters[adapter.name] = adapter
        with self._health_lock:
            self._health[adapter.name] = DataSourceHealth(adapter_name=adapter.name)
        logger.info(f"Registered data source '{adapter.name}' (priority {adapter.get_priority()})")

    def get_available_adapters(self) -> list[str]:
        """Names of all registered adapters, in priority order."""
        return [a.name for a in sorted(self._adapters.values(), key=lambda a: a.get_priority())]

    def get_primary_adapter(self) -> DataSourceAdapter | None:
        """The configured primary adapter, if registered."""
        return self._adapters.get(self._config.primary_source)

    def _secondary_adapters(self) -> list[DataSourceAdapter]:
        """Enabled non-primary adapters, in priority order."""
        return sorted(
            (
                adapter
                for name, adapter in self._adapters.items()
                if name != self._config.primary_source and adapter.is_enabled()
            ),
            key=lambda a: a.get_priority(),
        )

    def get_enhancement_adapter(self) -> DataSourceAdapter | None:
        """The highest-priority enabled non-primary adapter, when enhancement is on."""
        if not self._config.enhancement_enabled:
            return None
        secondaries = self._secondary_adapters()
        return secondaries[0] if secondaries else None

    def get_fallback_adapter(self, capability: str | None = None) -> DataSourceAdapter | None:
        """The fallback adapter, only when exactly one other adapter is available.

        Args:
            capability: Optional capability the fallback must support.
        """
        if not self._config.fallback_enabled:
            return None

        candidates = [a for a in self._secondary_adapters() if self.is_adapter_available(a.name)]
        if capability is not None:
            candidates = [a for a in candidates if a.get_capabilities().supports(capability)]
        if len(candidates) != 1:
            return None
        return candidates[0]

    def is_adapter_available(self, name: str) -> bool:
        """Whether the adapter's last recorded call or probe succeeded."""
        with self._health_lock:
            health = self._health.get(name)
            return health.available if health else False

    def get_health_status(self) -> dict[str, DataSourceHealth]:
        """Snapshot of every adapter's health record."""
        with self._health_lock:
            return {name: replace(health) for name, health in self._health.items()}

    def _update_health(self, name: str, success: bool, response_time_ms: float | None = None) -> None:
        """Record the outcome of a call or probe."""
        with self._health_lock:
            current = self._health.get(name)
            if current is None:
                return
            current.available = success
            current.last_checked_at = datetime.now(UTC)
            current.last_response_time_ms = response_time_ms
            current.consecutive_error_count = 0 if success else current.consecutive_error_count + 1

    async def _timed_call(
        self, operation: Callable[[DataSourceAdapter], Awaitable[T]], adapter: DataSourceAdapter
    ) -> T:
        """Run an operation against an adapter, recording health on the outcome."""
        start = time.monotonic()
        try:
            result = await operation(adapter)
        except CapabilityUnsupported:
            raise
        except Exception:
            self._update_health(adapter.name, False, (time.monotonic() - start) * 1000)
            raise
        self._update_health(adapter.name, True, (time.monotonic() - start) * 1000)
        return result

    async def _run_primary(
        self,
        operation: Callable[[DataSourceAdapter], Awaitable[T]],
        capability: str | None,
    ) -> tuple[T, DataSourceAdapter]:
        """Run the primary operation, retrying once on an eligible fallback."""
        primary = self.get_primary_adapter()
        if primary is None:
            raise NoPrimarySource(
                f"Primary data source '{self._config.primary_source}' not available"
            )

        try:
            return await self._timed_call(operation, primary), primary
        except CapabilityUnsupported:
            raise
        except Exception as error:
            fallback = self.get_fallback_adapter(capability)
            if fallback is None:
                raise

            logger.warning(f"Primary source '{primary.name}' failed, trying fallback '{fallback.name}': {error}")
            try:
                return await self._timed_call(operation, fallback), fallback
            except Exception as fallback_error:
                logger.error(f"Fallback source '{fallback.name}' also failed: {fallback_error}")
                raise error from fallback_error

    async def _run_enhancement(
        self,
        operation: Callable[[DataSourceAdapter], Awaitable[E | None]],
        served_by: DataSourceAdapter,
    ) -> E | None:
        """Run the enhancement operation bounded by the soft timeout, never raising."""
        adapter = self.get_enhancement_adapter()
        if adapter is None or adapter is served_by:
            return None

        try:
            return await asyncio.wait_for(
                operation(adapter), timeout=self._config.enhancement_timeout_seconds
            )
        except TimeoutError:
            logger.warning(
                f"Enhancement from '{adapter.name}' exceeded "
                f"{self._config.enhancement_timeout_seconds}s, using primary result only"
            )
        except Exception as e:
            logger.warning(f"Enhancement from '{adapter.name}' failed, using primary result only: {e}")
        return None

    async def execute_with_enhancement(
        self,
        primary_operation: Callable[[DataSourceAdapter], Awaitable[T]],
        enhancement_operation: Callable[[DataSourceAdapter], Awaitable[E | None]] | None = None,
        combine: Callable[[T, E], T] | None = None,
        capability: str | None = None,
    ) -> T:
        """Execute against the primary source, with fallback and optional enhancement.

        If the primary fails and exactly one other adapter is available, the same
        operation is retried once on it. When that also fails the primary's error is
        raised, not the fallback's. Enhancement failures never fail the call.

        Args:
            primary_operation: Operation producing the base result.
            enhancement_operation: Optional operation run against the enhancement source.
            combine: Merges a non-None enhancement result into the base result.
            capability: Capability a fallback adapter must support.

        Returns:
            The primary (or fallback) result, combined with enhancement data if any.
        """
        result, served_by = await self._run_primary(primary_operation, capability)

        if enhancement_operation is None or combine is None:
            return result

        enhancement = await self._run_enhancement(enhancement_operation, served_by)
        if enhancement is None:
            return result
        return combine(result, enhancement)

    async def _probe(self, name: str, adapter: DataSourceAdapter) -> tuple[str, DataSourceHealth]:
        """Probe one adapter and record the outcome."""
        start = time.monotonic()
        try:
            healthy = await adapter.is_healthy()
        except Exception as e:
            logger.warning(f"Health check for '{name}' failed: {e}")
            healthy = False
        self._update_health(name, healthy, (time.monotonic() - start) * 1000)
        with self._health_lock:
            return name, replace(self._health[name])

    async def check_health(self) -> dict[str, DataSourceHealth]:
        """Probe every registered adapter concurrently."""
        results = await asyncio.gather(
            *(self._probe(name, adapter) for name, adapter in self._adapters.items())
        )
        return dict(results)
