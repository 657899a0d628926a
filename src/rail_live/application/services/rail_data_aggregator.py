"""Rail data aggregator: station boards and service details from all data sources."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, TypeVar

from rail_live.domain.contracts.rail_data_service import RailDataServiceProtocol
from rail_live.domain.errors import (
    CapabilityUnsupported,
    ConfigurationMissing,
    RequestTimeout,
)
from rail_live.domain.models.capabilities import (
    CAPABILITY_DEPARTURE_BOARD,
    CAPABILITY_DISRUPTIONS,
    CAPABILITY_REAL_TIME_TRACKING,
    CAPABILITY_SERVICE_DETAILS,
    CAPABILITY_STATION_INFO,
)
from rail_live.domain.models.cache_keys import (
    disruptions_cache_key,
    service_cache_key,
    station_cache_key,
)
from rail_live.domain.models.disruption import Disruption, DisruptionSummary
from rail_live.domain.models.station_board import DATA_SOURCE_COMBINED, EnhancedStationBoard
from rail_live.domain.models.station_board_request import StationBoardRequest

if TYPE_CHECKING:
    from rail_live.application.services.data_source_manager import DataSourceManager
    from rail_live.domain.contracts.result_cache import ResultCacheProtocol
    from rail_live.domain.models.service_details import ServiceDetails, ServiceTracking
    from rail_live.domain.models.station_info import StationInfo
    from rail_live.domain.models.station_message import StationMessage
    from rail_live.domain.ports import DataSourceAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BoardEnhancement:
    """Enhancement data gathered for one station board."""

    station_info: StationInfo | None = None
    disruptions: tuple[Disruption, ...] = ()


def calculate_data_quality(board: EnhancedStationBoard) -> float:
    """Fraction of departures with scheduled time, estimate and platform, 0.0 when empty."""
    if not board.departures:
        return 0.0
    complete = sum(1 for d in board.departures if d.has_complete_timing)
    return complete / len(board.departures)


async def _tolerant(label: str, operation: Callable[[], Awaitable[T]]) -> T | None:
    """Run one enhancement sub-call, logging and discarding any failure."""
    try:
        return await operation()
    except Exception as e:
        logger.warning(f"Enhancement sub-call '{label}' failed: {e}")
        return None


class RailDataAggregator(RailDataServiceProtocol):
    """Composes data source manager calls into the externally consumed operations."""

    def __init__(
        self,
        manager: DataSourceManager,
        cache: ResultCacheProtocol,
        cache_ttl_seconds: float = 30.0,
        request_timeout_seconds: float = 15.0,
    ) -> None:
        """Initialize the aggregator.

        Args:
            manager: Data source manager executing primary/fallback/enhancement calls.
            cache: Result cache consulted before and populated after each aggregation.
            cache_ttl_seconds: How long aggregated results stay fresh.
            request_timeout_seconds: Hard deadline for one whole aggregation.
        """
        self._manager = manager
        self._cache = cache
        self._cache_ttl_seconds = cache_ttl_seconds
        self._request_timeout_seconds = request_timeout_seconds

    async def _with_deadline(self, operation: Awaitable[T], what: str) -> T:
        try:
            async with asyncio.timeout(self._request_timeout_seconds):
                return await operation
        except TimeoutError:
            raise RequestTimeout(
                f"Timed out after {self._request_timeout_seconds}s fetching {what}"
            ) from None

    def is_cached(self, key: str) -> bool:
        """Whether a fresh aggregated result is held under the key."""
        return self._cache.get(key) is not None

    async def _cached(self, key: str, what: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Serve from the cache, otherwise aggregate under the deadline and store."""
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached  # type: ignore[no-any-return]

        result = await self._with_deadline(operation(), what)
        self._cache.set(key, result, self._cache_ttl_seconds)
        return result

    def _finalize_board(self, board: EnhancedStationBoard) -> EnhancedStationBoard:
        """Sort departures and attach quality and enhancement availability."""
        departures = tuple(sorted(board.departures, key=lambda d: d.scheduled_time))
        ordered = replace(board, departures=departures)
        return replace(
            ordered,
            data_quality=calculate_data_quality(ordered),
            enhancement_available=self._manager.get_enhancement_adapter() is not None,
        )

    async def get_station_board(self, request: StationBoardRequest) -> EnhancedStationBoard:
        """Get a departure board, enriched with station info and disruptions when available.

        Args:
            request: Validated board request.

        Returns:
            Board with departures sorted by scheduled time.
        """
        code = request.location_code

        async def primary(adapter: DataSourceAdapter) -> EnhancedStationBoard:
            return self._finalize_board(await adapter.get_station_board(request))

        async def enhancement(adapter: DataSourceAdapter) -> BoardEnhancement | None:
            capabilities = adapter.get_capabilities()

            async def no_value() -> Any:
                return None

            async def touching_disruptions() -> tuple[Disruption, ...]:
                disruptions = await adapter.get_disruptions()
                return tuple(d for d in disruptions if d.touches(code))

            info, disruptions = await asyncio.gather(
                _tolerant(
                    "station_info",
                    (lambda: adapter.get_station_info(code))
                    if capabilities.station_info
                    else no_value,
                ),
                _tolerant(
                    "disruptions",
                    touching_disruptions if capabilities.disruptions else no_value,
                ),
            )
            if info is None and not disruptions:
                return None
            return BoardEnhancement(station_info=info, disruptions=disruptions or ())

        def combine(
            board: EnhancedStationBoard, extra: BoardEnhancement
        ) -> EnhancedStationBoard:
            attached: dict[str, Any] = {}
            if extra.station_info is not None:
                attached["station_info"] = extra.station_info
            if extra.disruptions:
                attached["disruptions"] = extra.disruptions
            if not attached:
                return board
            return replace(board, data_source=DATA_SOURCE_COMBINED, **attached)

        async def aggregate() -> EnhancedStationBoard:
            return await self._manager.execute_with_enhancement(
                primary, enhancement, combine, capability=CAPABILITY_DEPARTURE_BOARD
            )

        return await self._cached(request.cache_key(), f"station board for {code}", aggregate)

    async def get_service_details(self, service_id: str) -> ServiceDetails:
        """Get service details, enriched with live tracking when available."""

        async def primary(adapter: DataSourceAdapter) -> ServiceDetails:
            return await adapter.get_service_details(service_id)

        async def enhancement(adapter: DataSourceAdapter) -> ServiceTracking | None:
            if not adapter.get_capabilities().supports(CAPABILITY_REAL_TIME_TRACKING):
                return None
            return await adapter.get_service_tracking(service_id)

        def combine(details: ServiceDetails, tracking: ServiceTracking) -> ServiceDetails:
            return replace(details, tracking=tracking, data_source=DATA_SOURCE_COMBINED)

        async def aggregate() -> ServiceDetails:
            return await self._manager.execute_with_enhancement(
                primary, enhancement, combine, capability=CAPABILITY_SERVICE_DETAILS
            )

        return await self._cached(
            service_cache_key(service_id), f"service {service_id}", aggregate
        )

    async def get_station_info(self, code: str) -> StationInfo:
        """Get station information, primary minimal data enriched by the enhancement source."""

        async def primary(adapter: DataSourceAdapter) -> StationInfo:
            return await adapter.get_station_info(code)

        async def enhancement(adapter: DataSourceAdapter) -> StationInfo | None:
            if not adapter.get_capabilities().supports(CAPABILITY_STATION_INFO):
                return None
            return await adapter.get_station_info(code)

        def combine(base: StationInfo, extra: StationInfo) -> StationInfo:
            return replace(
                base,
                name=extra.name or base.name,
                facilities=extra.facilities or base.facilities,
                accessibility=extra.accessibility,
                contacts=extra.contacts or base.contacts,
                coordinates=extra.coordinates or base.coordinates,
                region=extra.region or base.region,
                operator=extra.operator or base.operator,
                source=DATA_SOURCE_COMBINED,
            )

        async def aggregate() -> StationInfo:
            return await self._manager.execute_with_enhancement(
                primary, enhancement, combine, capability=CAPABILITY_STATION_INFO
            )

        return await self._cached(station_cache_key(code), f"station info for {code}", aggregate)

    async def _station_messages(self, code: str) -> tuple[StationMessage, ...]:
        request = StationBoardRequest(location_code=code, row_limit=1)

        async def primary(adapter: DataSourceAdapter) -> EnhancedStationBoard:
            return await adapter.get_station_board(request)

        board = await self._manager.execute_with_enhancement(
            primary, capability=CAPABILITY_DEPARTURE_BOARD
        )
        return board.messages

    async def _source_disruptions(self, code: str | None, limit: int) -> tuple[Disruption, ...]:
        adapter = self._manager.get_enhancement_adapter()
        if adapter is None:
            raise ConfigurationMissing("No disruption source is configured")
        if not adapter.get_capabilities().supports(CAPABILITY_DISRUPTIONS):
            raise CapabilityUnsupported(adapter.name, CAPABILITY_DISRUPTIONS)
        disruptions = await adapter.get_disruptions(limit=limit)
        if code is not None:
            disruptions = [d for d in disruptions if d.touches(code)]
        return tuple(disruptions)

    async def get_disruptions(self, code: str | None = None, limit: int = 20) -> DisruptionSummary:
        """Get NRCC station messages and enhancement-feed disruptions.

        Each source fails independently. Only when every attempted source fails is
        the first failure raised.
        """

        async def aggregate() -> DisruptionSummary:
            attempts: list[Awaitable[Any]] = [self._source_disruptions(code, limit)]
            if code is not None:
                attempts.insert(0, self._station_messages(code))
            results = await asyncio.gather(*attempts, return_exceptions=True)

            failures = [r for r in results if isinstance(r, BaseException)]
            for failure in failures:
                logger.warning(f"Disruption source failed: {failure}")
            if len(failures) == len(results):
                raise failures[0]

            messages: tuple[StationMessage, ...] = ()
            disruptions: tuple[Disruption, ...] = ()
            if code is not None and not isinstance(results[0], BaseException):
                messages = results[0]
            if not isinstance(results[-1], BaseException):
                disruptions = results[-1]
            return DisruptionSummary(code=code, messages=messages, disruptions=disruptions)

        return await self._cached(
            disruptions_cache_key(code, limit), "disruptions", aggregate
        )

    async def get_health_status(self, refresh: bool = True) -> dict[str, Any]:
        """Strategy and per-source health, probing every source first when refresh is set."""
        health = await self._manager.check_health() if refresh else self._manager.get_health_status()
        primary = self._manager.get_primary_adapter()
        enhancement = self._manager.get_enhancement_adapter()
        config = self._manager.config
        return {
            "strategy": {
                "primary_source": config.primary_source,
                "fallback_enabled": config.fallback_enabled,
                "enhancement_enabled": config.enhancement_enabled,
            },
            "primary": health.get(primary.name) if primary else None,
            "enhancement": health.get(enhancement.name) if enhancement else None,
            "sources": health,
        }
