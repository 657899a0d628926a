"""Adapter capability flags."""

from dataclasses import dataclass

CAPABILITY_STATION_INFO = "station_info"
CAPABILITY_DEPARTURE_BOARD = "departure_board"
CAPABILITY_SERVICE_DETAILS = "service_details"
CAPABILITY_DISRUPTIONS = "disruptions"
CAPABILITY_REAL_TIME_TRACKING = "real_time_tracking"


@dataclass(frozen=True)
class AdapterCapabilities:
    """Which operations a data source adapter supports."""

    station_info: bool = False
    departure_board: bool = False
    service_details: bool = False
    disruptions: bool = False
    real_time_tracking: bool = False

    def supports(self, capability: str) -> bool:
        """Check a capability by name."""
        return bool(getattr(self, capability, False))
