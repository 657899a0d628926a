"""Data source adapter port."""

from typing import Protocol

from rail_live.domain.models.capabilities import AdapterCapabilities
from rail_live.domain.models.disruption import Disruption
from rail_live.domain.models.service_details import ServiceDetails, ServiceTracking
from rail_live.domain.models.station_board import EnhancedStationBoard
from rail_live.domain.models.station_board_request import StationBoardRequest
from rail_live.domain.models.station_info import StationInfo


class DataSourceAdapter(Protocol):
    """Uniform, capability-annotated interface over one upstream feed.

    Operations outside an adapter's capabilities raise CapabilityUnsupported
    instead of returning empty data.
    """

    name: str

    def is_enabled(self) -> bool:
        """Whether the adapter is configured and switched on."""
        ...

    async def is_healthy(self) -> bool:
        """Cheap connectivity probe."""
        ...

    async def get_station_info(self, code: str) -> StationInfo:
        """Get information about a station."""
        ...

    async def get_station_board(self, request: StationBoardRequest) -> EnhancedStationBoard:
        """Get the departure board for a station."""
        ...

    async def get_service_details(self, service_id: str) -> ServiceDetails:
        """Get details of a single service."""
        ...

    async def get_disruptions(
        self, limit: int = 20, severity: str | None = None
    ) -> list[Disruption]:
        """Get current disruptions."""
        ...

    async def get_service_tracking(self, service_id: str) -> ServiceTracking:
        """Get the live position of a service."""
        ...

    def get_priority(self) -> int:
        """Priority of this adapter, lower is tried first."""
        ...

    def get_capabilities(self) -> AdapterCapabilities:
        """Capabilities this adapter supports."""
        ...
