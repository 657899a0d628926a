"""12-factor configuration adapter using environment variables and TOML config."""

import tomllib
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

KNOWN_SOURCES = ("darwin", "knowledge-station")
SOURCES_TOML_KEYS = (
    "primary_source",
    "fallback_enabled",
    "enhancement_enabled",
    "enhancement_timeout_seconds",
)


class AppConfig(BaseSettings):
    """Application configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=8080, description="Port to bind the server to")
    log_level: str = Field(default="INFO", description="Root log level")

    # Darwin LDB SOAP API
    darwin_api_url: str | None = Field(default=None, description="Darwin LDB SOAP endpoint")
    darwin_api_token: str | None = Field(default=None, description="Darwin LDB access token")
    darwin_wsdl_url: str | None = Field(
        default=None, description="Darwin LDB WSDL location, defaults to the public service"
    )
    darwin_api_timeout: float = Field(
        default=10.0, description="Timeout for Darwin API requests in seconds"
    )

    # Knowledge Station API
    knowledge_station_api_url: str | None = Field(
        default=None, description="Knowledge Station base URL"
    )
    knowledge_station_api_token: str | None = Field(
        default=None, description="Knowledge Station API token"
    )
    knowledge_station_username: str | None = Field(
        default=None, description="Knowledge Station basic auth username"
    )
    knowledge_station_password: str | None = Field(
        default=None, description="Knowledge Station basic auth password"
    )
    knowledge_station_enabled: bool = Field(
        default=True, description="Use Knowledge Station for enhancement and fallback"
    )
    knowledge_station_timeout: float = Field(
        default=10.0, description="Timeout for Knowledge Station requests in seconds"
    )
    knowledge_station_retries: int = Field(
        default=3, description="Attempts per Knowledge Station request"
    )

    # Data source strategy
    primary_source: str = Field(default="darwin", description="Name of the primary data source")
    fallback_enabled: bool = Field(
        default=True, description="Retry a failed primary call once on the other source"
    )
    enhancement_enabled: bool = Field(
        default=True, description="Enrich primary results from the secondary source"
    )
    enhancement_timeout_seconds: float = Field(
        default=3.0, description="Soft timeout for enhancement calls in seconds"
    )
    request_timeout_seconds: float = Field(
        default=15.0, description="Hard deadline for one aggregated request in seconds"
    )
    departures_cache_ttl_seconds: float = Field(
        default=30.0, description="How long aggregated results are served from the cache"
    )

    # Push Port movement stream
    kafka_brokers: Annotated[list[str], NoDecode] = Field(
        default_factory=list, description="Comma-separated Kafka bootstrap servers"
    )
    kafka_topic: str | None = Field(default=None, description="Movement topic to consume")
    kafka_group_id: str = Field(
        default="rail-live", description="Durable consumer group id"
    )
    kafka_client_id: str = Field(default="rail-live", description="Kafka client id")
    kafka_sasl_username: str | None = Field(default=None, description="SASL/PLAIN username")
    kafka_sasl_password: str | None = Field(default=None, description="SASL/PLAIN password")
    station_cache_capacity: int = Field(
        default=200, description="Movement events kept per station"
    )
    subscriber_queue_size: int = Field(
        default=100, description="Frames buffered per websocket subscriber"
    )

    # Location code resolution
    tiploc_map_file: str | None = Field(
        default="data/tiploc-to-crs.json",
        description="JSON file of TIPLOC to CRS overrides, also receives learned mappings",
    )
    mapping_save_debounce_seconds: float = Field(
        default=1.0, description="Delay batching learned mappings before they are written"
    )
    corpus_lookup_url: str | None = Field(
        default=None, description="Remote TIPLOC lookup endpoint of another deployment"
    )
    internal_api_token: str | None = Field(
        default=None, description="Token for the internal lookup endpoint, sent and checked"
    )
    network_rail_corpus_url: str | None = Field(
        default=None, description="Network Rail CORPUS download URL"
    )
    network_rail_username: str | None = Field(default=None, description="Network Rail username")
    network_rail_password: str | None = Field(default=None, description="Network Rail password")

    # Rate limiting configuration
    rate_limit_per_window: int = Field(
        default=20, description="Maximum requests per IP address and operation per window"
    )
    rate_limit_window_seconds: float = Field(
        default=60.0, description="Length of the rate limit window in seconds"
    )
    redis_url: str | None = Field(
        default=None, description="Redis URL for a rate limit store shared between instances"
    )
    redis_token: str | None = Field(default=None, description="Redis password")

    # TOML config file path, overrides the data source strategy from a [sources] table
    config_file: str | None = Field(
        default=None,
        description="Path to TOML configuration file with a [sources] table",
    )

    @field_validator("primary_source")
    @classmethod
    def validate_primary_source(cls, v: str) -> str:
        """Validate the primary source is a known adapter name."""
        name = v.strip().lower()
        if name not in KNOWN_SOURCES:
            raise ValueError(f"primary_source must be one of {', '.join(KNOWN_SOURCES)}")
        return name

    @field_validator(
        "departures_cache_ttl_seconds",
        "request_timeout_seconds",
        "enhancement_timeout_seconds",
        "rate_limit_window_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator(
        "station_cache_capacity",
        "subscriber_queue_size",
        "rate_limit_per_window",
        "knowledge_station_retries",
    )
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        """Validate sizes and counts are at least 1."""
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("kafka_brokers", mode="before")
    @classmethod
    def split_brokers(cls, v: Any) -> Any:
        """Split a comma-separated broker list."""
        if isinstance(v, str):
            return [broker.strip() for broker in v.split(",") if broker.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level name."""
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("log_level must be DEBUG, INFO, WARNING, ERROR or CRITICAL")
        return level

    def kafka_configured(self) -> bool:
        """Whether enough is set to consume the movement stream."""
        return bool(self.kafka_brokers and self.kafka_topic)

    def load_toml_overrides(self) -> dict[str, Any]:
        """Apply the [sources] table of the TOML file, if one is configured.

        Returns:
            The parsed TOML document, empty when no file is configured.
        """
        if not self.config_file:
            return {}

        config_path = Path(self.config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)

        sources = toml_data.get("sources", {})
        # validate_assignment runs the field validators on each override
        for key in SOURCES_TOML_KEYS:
            if key in sources:
                setattr(self, key, sources[key])

        return toml_data
