"""Data source health record."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass
class DataSourceHealth:
    """Mutable health record, one per registered adapter for the process lifetime."""

    adapter_name: str
    available: bool = False
    last_checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    consecutive_error_count: int = 0
    last_response_time_ms: float | None = None
