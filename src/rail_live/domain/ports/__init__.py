"""Ports (interfaces) for the ports-and-adapters architecture."""

from rail_live.domain.ports.data_source_adapter import DataSourceAdapter
from rail_live.domain.ports.location_lookup import LocationLookup

__all__ = ["DataSourceAdapter", "LocationLookup"]
