"""Contracts (protocols) for shared infrastructure components."""

from rail_live.domain.contracts.event_broadcaster import EventBroadcasterProtocol
from rail_live.domain.contracts.rail_data_service import RailDataServiceProtocol
from rail_live.domain.contracts.request_rate_limiter import RequestRateLimiterProtocol
from rail_live.domain.contracts.result_cache import ResultCacheProtocol
from rail_live.domain.contracts.station_event_cache import StationEventCacheProtocol

__all__ = [
    "EventBroadcasterProtocol",
    "RailDataServiceProtocol",
    "RequestRateLimiterProtocol",
    "ResultCacheProtocol",
    "StationEventCacheProtocol",
]
