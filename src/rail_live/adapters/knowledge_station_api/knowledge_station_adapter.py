"""Knowledge Station data source adapter, the enhancement feed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rail_live.adapters.knowledge_station_api.parser import (
    parse_disruptions,
    parse_service_tracking,
    parse_station_info,
)
from rail_live.domain.errors import CapabilityUnsupported
from rail_live.domain.models.capabilities import (
    CAPABILITY_DEPARTURE_BOARD,
    CAPABILITY_SERVICE_DETAILS,
    AdapterCapabilities,
)
from rail_live.domain.ports.data_source_adapter import DataSourceAdapter

if TYPE_CHECKING:
    from rail_live.adapters.knowledge_station_api.http_client import KnowledgeStationHttpClient
    from rail_live.domain.models.disruption import Disruption
    from rail_live.domain.models.service_details import ServiceDetails, ServiceTracking
    from rail_live.domain.models.station_board import EnhancedStationBoard
    from rail_live.domain.models.station_board_request import StationBoardRequest
    from rail_live.domain.models.station_info import StationInfo

logger = logging.getLogger(__name__)

KNOWLEDGE_STATION_PRIORITY = 2


class KnowledgeStationAdapter(DataSourceAdapter):
    """Station facilities, live tracking and disruptions from Knowledge Station.

    An unconfigured client makes the adapter disabled and permanently unhealthy.
    """

    name = "knowledge-station"

    def __init__(self, client: KnowledgeStationHttpClient) -> None:
        """Initialize with a Knowledge Station HTTP client."""
        self._client = client

    def is_enabled(self) -> bool:
        return self._client.is_configured()

    async def is_healthy(self) -> bool:
        if not self.is_enabled():
            return False
        return await self._client.test_connection()

    async def get_station_info(self, code: str) -> StationInfo:
        return parse_station_info(await self._client.fetch_station(code))

    async def get_station_board(self, request: StationBoardRequest) -> EnhancedStationBoard:
        raise CapabilityUnsupported(self.name, CAPABILITY_DEPARTURE_BOARD)

    async def get_service_details(self, service_id: str) -> ServiceDetails:
        raise CapabilityUnsupported(self.name, CAPABILITY_SERVICE_DETAILS)

    async def get_disruptions(
        self, limit: int = 20, severity: str | None = None
    ) -> list[Disruption]:
        raw = await self._client.fetch_disruptions(limit=limit, severity=severity)
        return parse_disruptions(raw)

    async def get_service_tracking(self, service_id: str) -> ServiceTracking:
        return parse_service_tracking(await self._client.fetch_service(service_id), service_id)

    def get_priority(self) -> int:
        return KNOWLEDGE_STATION_PRIORITY

    def get_capabilities(self) -> AdapterCapabilities:
        return AdapterCapabilities(station_info=True, disruptions=True, real_time_tracking=True)
