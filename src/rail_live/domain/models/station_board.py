"""Enhanced station board domain model."""

from dataclasses import dataclass
from datetime import datetime

from rail_live.domain.models.departure import Departure
from rail_live.domain.models.disruption import Disruption
from rail_live.domain.models.station_info import StationInfo
from rail_live.domain.models.station_message import StationMessage

DATA_SOURCE_PRIMARY = "primary"
DATA_SOURCE_COMBINED = "combined"


@dataclass(frozen=True)
class EnhancedStationBoard:
    """Departures for one station plus whatever enhancement data was available."""

    location_name: str
    code: str
    generated_at: datetime
    departures: tuple[Departure, ...]
    messages: tuple[StationMessage, ...] = ()
    filter_location_name: str | None = None
    filter_code: str | None = None
    station_info: StationInfo | None = None
    disruptions: tuple[Disruption, ...] | None = None
    data_source: str = DATA_SOURCE_PRIMARY
    enhancement_available: bool = False
    data_quality: float = 0.0
