"""Adapters layer - external system integrations."""

from rail_live.adapters.config import AppConfig
from rail_live.adapters.darwin_api import DarwinAdapter, DarwinSoapClient
from rail_live.adapters.knowledge_station_api import (
    KnowledgeStationAdapter,
    KnowledgeStationHttpClient,
)

__all__ = [
    "AppConfig",
    "DarwinAdapter",
    "DarwinSoapClient",
    "KnowledgeStationAdapter",
    "KnowledgeStationHttpClient",
]
