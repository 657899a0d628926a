"""Wiring of data sources and location resolution from configuration."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiohttp
import httpx

from rail_live.adapters.cache import TTLCache
from rail_live.adapters.darwin_api import DarwinAdapter, DarwinSoapClient
from rail_live.adapters.darwin_api.constants import DARWIN_DEFAULT_URL, DARWIN_WSDL_URL
from rail_live.adapters.knowledge_station_api import (
    KnowledgeStationAdapter,
    KnowledgeStationHttpClient,
)
from rail_live.adapters.location import (
    CorpusLookupClient,
    CorpusTable,
    LocationCodeResolver,
    MappingPersister,
)
from rail_live.application.services import (
    DataSourceConfig,
    DataSourceManager,
    RailDataAggregator,
)

if TYPE_CHECKING:
    from aiohttp import ClientSession

    from rail_live.adapters.config import AppConfig
    from rail_live.domain.ports.location_lookup import LocationLookup

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_sessions(
    config: AppConfig,
) -> AsyncIterator[tuple[ClientSession, httpx.AsyncClient]]:
    """HTTP sessions for the JSON upstreams and for Darwin SOAP, closed together."""
    async with (
        aiohttp.ClientSession() as session,
        httpx.AsyncClient(timeout=config.darwin_api_timeout) as soap_session,
    ):
        yield session, soap_session


def build_data_source_manager(
    config: AppConfig,
    session: ClientSession,
    soap_session: httpx.AsyncClient | None = None,
) -> DataSourceManager:
    """Create both adapters and the manager choosing between them."""
    darwin = DarwinAdapter(
        DarwinSoapClient(
            soap_session,
            config.darwin_api_url or (DARWIN_DEFAULT_URL if config.darwin_api_token else None),
            config.darwin_api_token,
            wsdl_url=config.darwin_wsdl_url or DARWIN_WSDL_URL,
            timeout_seconds=config.darwin_api_timeout,
        )
    )
    knowledge_station = KnowledgeStationAdapter(
        KnowledgeStationHttpClient(
            session,
            config.knowledge_station_api_url,
            token=config.knowledge_station_api_token,
            username=config.knowledge_station_username,
            password=config.knowledge_station_password,
            enabled=config.knowledge_station_enabled,
            timeout_seconds=config.knowledge_station_timeout,
            retries=config.knowledge_station_retries,
        )
    )
    strategy = DataSourceConfig(
        primary_source=config.primary_source,
        fallback_enabled=config.fallback_enabled,
        enhancement_enabled=config.enhancement_enabled,
        enhancement_timeout_seconds=config.enhancement_timeout_seconds,
    )
    for adapter in (darwin, knowledge_station):
        state = "enabled" if adapter.is_enabled() else "not configured"
        logger.info(f"Data source '{adapter.name}': {state}")
    return DataSourceManager([darwin, knowledge_station], strategy)


def build_aggregator(
    config: AppConfig,
    session: ClientSession,
    soap_session: httpx.AsyncClient | None = None,
) -> tuple[RailDataAggregator, DataSourceManager]:
    """Create the aggregator together with the manager it runs on."""
    manager = build_data_source_manager(config, session, soap_session)
    aggregator = RailDataAggregator(
        manager,
        TTLCache(default_ttl_seconds=config.departures_cache_ttl_seconds),
        cache_ttl_seconds=config.departures_cache_ttl_seconds,
        request_timeout_seconds=config.request_timeout_seconds,
    )
    return aggregator, manager


def build_corpus_table(config: AppConfig, session: ClientSession) -> CorpusTable | None:
    """CORPUS table, when a download URL is configured."""
    if not config.network_rail_corpus_url:
        return None
    return CorpusTable(
        session,
        config.network_rail_corpus_url,
        username=config.network_rail_username,
        password=config.network_rail_password,
    )


def build_location_lookup(
    config: AppConfig, session: ClientSession, corpus_table: CorpusTable | None = None
) -> LocationLookup | None:
    """Remote lookup for unknown TIPLOCs.

    Prefers another deployment's lookup endpoint, then a local CORPUS table.
    """
    if config.corpus_lookup_url:
        return CorpusLookupClient(session, config.corpus_lookup_url, config.internal_api_token)
    return corpus_table


def build_resolver(
    config: AppConfig,
    lookup: LocationLookup | None,
    persister: MappingPersister | None = None,
) -> LocationCodeResolver:
    """Resolver over the built-in table, the override file and the remote lookup."""
    override_path = Path(config.tiploc_map_file) if config.tiploc_map_file else None
    return LocationCodeResolver(lookup=lookup, override_path=override_path, persister=persister)


def build_persister(config: AppConfig) -> MappingPersister | None:
    """Persister writing learned mappings back to the override file."""
    if not config.tiploc_map_file:
        return None
    return MappingPersister(
        Path(config.tiploc_map_file), debounce_seconds=config.mapping_save_debounce_seconds
    )
