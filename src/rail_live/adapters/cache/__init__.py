"""In-memory caches."""

from .station_event_cache import UNKNOWN_STATION, StationEventCache
from .ttl_cache import TTLCache

__all__ = ["UNKNOWN_STATION", "StationEventCache", "TTLCache"]
