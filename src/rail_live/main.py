"""Main entry point for the rail-live service."""

import asyncio
import logging
import sys

from rail_live.adapters.cache import StationEventCache
from rail_live.adapters.config import AppConfig
from rail_live.adapters.ingestion import MovementBroker, create_kafka_consumer
from rail_live.adapters.rate_limiting import RequestRateLimiter
from rail_live.adapters.web import EventBroadcaster, RailLiveWebApp, WebServer
from rail_live.bootstrap import (
    build_aggregator,
    build_corpus_table,
    build_location_lookup,
    build_persister,
    build_resolver,
    open_sessions,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)


async def main() -> None:
    """Main application entry point."""
    config = AppConfig()
    logging.getLogger().setLevel(config.log_level)

    try:
        config.load_toml_overrides()
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration file: {e}")
        sys.exit(1)

    # Shared HTTP sessions for efficient connections
    async with open_sessions(config) as (session, soap_session):
        aggregator, manager = build_aggregator(config, session, soap_session)
        primary = manager.get_primary_adapter()
        if primary is None or not primary.is_enabled():
            logger.warning(
                f"Primary data source '{config.primary_source}' is not configured, "
                "board requests will fail until it is"
            )

        corpus_table = build_corpus_table(config, session)
        persister = build_persister(config)
        resolver = build_resolver(
            config, build_location_lookup(config, session, corpus_table), persister
        )

        event_cache = StationEventCache(capacity=config.station_cache_capacity)
        broadcaster = EventBroadcaster(queue_size=config.subscriber_queue_size)

        broker = None
        if config.kafka_configured():
            broker = MovementBroker(
                lambda: create_kafka_consumer(
                    config.kafka_brokers,
                    config.kafka_topic or "",
                    config.kafka_group_id,
                    config.kafka_client_id,
                    config.kafka_sasl_username,
                    config.kafka_sasl_password,
                ),
                resolver,
                event_cache,
                broadcaster,
                topic=config.kafka_topic or "",
                brokers=config.kafka_brokers,
            )
        else:
            logger.info("Kafka not configured, live movement stream disabled")

        rate_limiter = RequestRateLimiter(
            limit=config.rate_limit_per_window,
            window_seconds=config.rate_limit_window_seconds,
            redis_url=config.redis_url,
            redis_token=config.redis_token,
        )

        web_app = RailLiveWebApp(
            aggregator,
            event_cache,
            broadcaster,
            broker=broker,
            corpus_lookup=corpus_table,
            internal_token=config.internal_api_token,
            rate_limiter=rate_limiter,
        )
        server = WebServer(web_app.build_app(), host=config.host, port=config.port)

        health = await manager.check_health()
        for name, status in health.items():
            logger.info(f"Startup health of '{name}': {'up' if status.available else 'down'}")

        if persister is not None:
            await persister.start()
        if broker is not None:
            await broker.start()

        try:
            await server.start()
        except KeyboardInterrupt:
            logger.info("Shutting down...")
        finally:
            await server.stop()
            if broker is not None:
                await broker.stop()
            if persister is not None:
                await persister.stop()


def run() -> None:
    """Synchronous entry point for the service command."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
