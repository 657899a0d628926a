"""Application services (use cases) for live rail data."""

from .data_source_manager import DataSourceConfig, DataSourceManager
from .rail_data_aggregator import RailDataAggregator, calculate_data_quality

__all__ = ["DataSourceConfig", "DataSourceManager", "RailDataAggregator", "calculate_data_quality"]
