"""Domain models for live rail data."""

from rail_live.domain.models.cache_entry import CacheEntry
from rail_live.domain.models.capabilities import AdapterCapabilities
from rail_live.domain.models.data_source_health import DataSourceHealth
from rail_live.domain.models.departure import Departure, Location
from rail_live.domain.models.disruption import Disruption, DisruptionSummary, RouteRef
from rail_live.domain.models.error_details import ErrorDetails
from rail_live.domain.models.movement_event import MovementEvent
from rail_live.domain.models.rate_limit_result import RateLimitResult
from rail_live.domain.models.service_details import (
    CallingPoint,
    ServiceDetails,
    ServiceTracking,
    TrackedStop,
)
from rail_live.domain.models.station_board import (
    DATA_SOURCE_COMBINED,
    DATA_SOURCE_PRIMARY,
    EnhancedStationBoard,
)
from rail_live.domain.models.station_board_request import (
    StationBoardRequest,
    normalize_station_code,
)
from rail_live.domain.models.station_info import AccessibilityInfo, Coordinates, StationInfo
from rail_live.domain.models.station_message import StationMessage

__all__ = [
    "DATA_SOURCE_COMBINED",
    "DATA_SOURCE_PRIMARY",
    "AccessibilityInfo",
    "AdapterCapabilities",
    "CacheEntry",
    "CallingPoint",
    "Coordinates",
    "DataSourceHealth",
    "Departure",
    "Disruption",
    "DisruptionSummary",
    "EnhancedStationBoard",
    "ErrorDetails",
    "Location",
    "MovementEvent",
    "RateLimitResult",
    "RouteRef",
    "ServiceDetails",
    "ServiceTracking",
    "StationBoardRequest",
    "StationInfo",
    "StationMessage",
    "TrackedStop",
    "normalize_station_code",
]
