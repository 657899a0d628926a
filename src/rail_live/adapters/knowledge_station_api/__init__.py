"""Knowledge Station JSON adapter."""

from .http_client import KnowledgeStationHttpClient
from .knowledge_station_adapter import KnowledgeStationAdapter

__all__ = ["KnowledgeStationAdapter", "KnowledgeStationHttpClient"]
