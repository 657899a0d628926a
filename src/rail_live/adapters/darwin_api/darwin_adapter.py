"""Darwin data source adapter, the primary live-departure feed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rail_live.domain.errors import CapabilityUnsupported
from rail_live.domain.models.capabilities import (
    CAPABILITY_DISRUPTIONS,
    CAPABILITY_REAL_TIME_TRACKING,
    AdapterCapabilities,
)
from rail_live.domain.models.station_board_request import StationBoardRequest
from rail_live.domain.models.station_info import StationInfo
from rail_live.domain.ports.data_source_adapter import DataSourceAdapter

if TYPE_CHECKING:
    from rail_live.adapters.darwin_api.soap_client import DarwinSoapClient
    from rail_live.domain.models.disruption import Disruption
    from rail_live.domain.models.service_details import ServiceDetails, ServiceTracking
    from rail_live.domain.models.station_board import EnhancedStationBoard

logger = logging.getLogger(__name__)

DARWIN_PRIORITY = 1


class DarwinAdapter(DataSourceAdapter):
    """Departure boards and service details from Darwin LDB."""

    name = "darwin"

    def __init__(self, client: DarwinSoapClient) -> None:
        """Initialize with a Darwin SOAP client."""
        self._client = client

    def is_enabled(self) -> bool:
        return self._client.is_configured()

    async def is_healthy(self) -> bool:
        if not self.is_enabled():
            return False
        return await self._client.test_connection()

    async def get_station_info(self, code: str) -> StationInfo:
        """Minimal station info derived from a one-row board."""
        board = await self._client.get_departure_board(
            StationBoardRequest(location_code=code, row_limit=1)
        )
        return StationInfo(code=board.code, name=board.location_name, source=self.name)

    async def get_station_board(self, request: StationBoardRequest) -> EnhancedStationBoard:
        return await self._client.get_departure_board(request)

    async def get_service_details(self, service_id: str) -> ServiceDetails:
        return await self._client.get_service_details(service_id)

    async def get_disruptions(
        self, limit: int = 20, severity: str | None = None
    ) -> list[Disruption]:
        # NRCC messages ride on the board itself
        raise CapabilityUnsupported(self.name, CAPABILITY_DISRUPTIONS)

    async def get_service_tracking(self, service_id: str) -> ServiceTracking:
        raise CapabilityUnsupported(self.name, CAPABILITY_REAL_TIME_TRACKING)

    def get_priority(self) -> int:
        return DARWIN_PRIORITY

    def get_capabilities(self) -> AdapterCapabilities:
        return AdapterCapabilities(station_info=True, departure_board=True, service_details=True)
