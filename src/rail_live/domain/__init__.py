"""Domain layer - core models, errors and ports."""

from rail_live.domain.errors import RailDataError
from rail_live.domain.models import (
    Departure,
    EnhancedStationBoard,
    StationBoardRequest,
    StationInfo,
)
from rail_live.domain.ports import DataSourceAdapter, LocationLookup

__all__ = [
    "DataSourceAdapter",
    "Departure",
    "EnhancedStationBoard",
    "LocationLookup",
    "RailDataError",
    "StationBoardRequest",
    "StationInfo",
]
