"""Protocol for the aggregated rail data operations served to clients."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from rail_live.domain.models.disruption import DisruptionSummary
    from rail_live.domain.models.service_details import ServiceDetails
    from rail_live.domain.models.station_board import EnhancedStationBoard
    from rail_live.domain.models.station_board_request import StationBoardRequest
    from rail_live.domain.models.station_info import StationInfo


class RailDataServiceProtocol(Protocol):
    """Station boards, services, stations and disruptions aggregated across sources."""

    async def get_station_board(self, request: StationBoardRequest) -> EnhancedStationBoard:
        """Get a departure board sorted by scheduled time."""
        ...

    async def get_service_details(self, service_id: str) -> ServiceDetails:
        """Get details of one service."""
        ...

    async def get_station_info(self, code: str) -> StationInfo:
        """Get station information."""
        ...

    async def get_disruptions(self, code: str | None = None, limit: int = 20) -> DisruptionSummary:
        """Get current disruption, optionally scoped to one station."""
        ...

    async def get_health_status(self, refresh: bool = True) -> dict[str, Any]:
        """Get strategy and per-source health."""
        ...

    def is_cached(self, key: str) -> bool:
        """Whether a fresh result is held under the cache key."""
        ...
