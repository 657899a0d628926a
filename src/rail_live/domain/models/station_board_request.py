"""Station board request model."""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

STATION_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")


def normalize_station_code(value: str) -> str:
    """Upper-case and validate a three letter station code."""
    code = value.strip().upper()
    if not STATION_CODE_PATTERN.match(code):
        raise ValueError("station code must be exactly 3 letters")
    return code


class StationBoardRequest(BaseModel):
    """Parameters for a departure board query."""

    model_config = ConfigDict(frozen=True)

    location_code: str
    row_limit: int = Field(default=10, ge=1, le=150)
    filter_code: str | None = None
    filter_type: Literal["to", "from"] = "to"
    time_offset: int = Field(default=0, ge=-120, le=119)
    time_window: int = Field(default=120, ge=1, le=120)

    @field_validator("location_code")
    @classmethod
    def validate_location_code(cls, v: str) -> str:
        """Normalize the location code to upper case."""
        return normalize_station_code(v)

    @field_validator("filter_code")
    @classmethod
    def validate_filter_code(cls, v: str | None) -> str | None:
        """Normalize the optional destination filter code."""
        if v is None or not v.strip():
            return None
        return normalize_station_code(v)

    def cache_key(self) -> str:
        """Key covering every field, so differing queries never share a cache slot."""
        return (
            f"departures:{self.location_code}:{self.row_limit}:{self.filter_code or ''}:"
            f"{self.filter_type}:{self.time_offset}:{self.time_window}"
        )
