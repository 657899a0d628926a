"""Long-running consumer of the Darwin Push Port movement stream."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from kafka import KafkaConsumer

from rail_live.adapters.ingestion.event_decoder import (
    decode_message,
    event_body,
    extract_location_code,
    extract_location_identifier,
)
from rail_live.domain.errors import ParseError
from rail_live.domain.models.movement_event import MovementEvent

if TYPE_CHECKING:
    from rail_live.adapters.location.location_code_resolver import LocationCodeResolver
    from rail_live.domain.contracts.event_broadcaster import EventBroadcasterProtocol
    from rail_live.domain.contracts.station_event_cache import StationEventCacheProtocol

logger = logging.getLogger(__name__)

ConsumerFactory = Callable[[], Any]


def create_kafka_consumer(
    brokers: list[str],
    topic: str,
    group_id: str,
    client_id: str,
    sasl_username: str | None = None,
    sasl_password: str | None = None,
) -> KafkaConsumer:
    """Build a consumer subscribed to the topic.

    The durable group id makes restarts resume from committed offsets; a new
    group starts at the latest offset rather than replaying the topic.
    """
    options: dict[str, Any] = {
        "bootstrap_servers": brokers,
        "group_id": group_id,
        "client_id": client_id,
        "auto_offset_reset": "latest",
        "enable_auto_commit": True,
    }
    if sasl_username:
        options.update(
            security_protocol="SASL_SSL",
            sasl_mechanism="PLAIN",
            sasl_plain_username=sasl_username,
            sasl_plain_password=sasl_password or "",
        )
    consumer = KafkaConsumer(**options)
    consumer.subscribe([topic])
    logger.info(f"Kafka consumer '{client_id}' subscribed to {topic} on {', '.join(brokers)}")
    return consumer


@dataclass(frozen=True)
class BrokerStatus:
    """Snapshot of the broker's progress."""

    running: bool
    messages_seen: int
    last_message_at: datetime | None
    topic: str
    brokers: tuple[str, ...]
    errors: int


class MovementBroker:
    """Consumes movement events, caches them per station and fans them out.

    Records are processed on the event loop one at a time, in delivery order per
    partition. A message that cannot be decoded or resolved is logged and skipped.
    Failures of the consume loop itself are not retried.
    """

    def __init__(
        self,
        consumer_factory: ConsumerFactory,
        resolver: LocationCodeResolver,
        cache: StationEventCacheProtocol,
        broadcaster: EventBroadcasterProtocol,
        topic: str,
        brokers: list[str] | None = None,
        poll_timeout_ms: int = 1000,
        max_records: int = 500,
    ) -> None:
        """Initialize the broker.

        Args:
            consumer_factory: Builds the (blocking) Kafka consumer.
            resolver: Resolves TIPLOCs to station codes.
            cache: Per-station ring buffer.
            broadcaster: Live subscriber fan-out.
            topic: Topic name, for status reporting.
            brokers: Broker addresses, for status reporting.
            poll_timeout_ms: How long one poll may block.
            max_records: Upper bound on records per poll.
        """
        self._consumer_factory = consumer_factory
        self._resolver = resolver
        self._cache = cache
        self._broadcaster = broadcaster
        self.topic = topic
        self.brokers = tuple(brokers or ())
        self._poll_timeout_ms = poll_timeout_ms
        self._max_records = max_records
        self._consumer: Any = None
        # Every consumer call runs on this one thread; KafkaConsumer is not thread safe
        self._executor: ThreadPoolExecutor | None = None
        self._task: asyncio.Task[None] | None = None
        self._messages_seen = 0
        self._last_message_at: datetime | None = None
        self._errors = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def status(self) -> BrokerStatus:
        """Current progress counters."""
        return BrokerStatus(
            running=self.running,
            messages_seen=self._messages_seen,
            last_message_at=self._last_message_at,
            topic=self.topic,
            brokers=self.brokers,
            errors=self._errors,
        )

    async def _in_consumer_thread(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, lambda: func(*args, **kwargs))

    async def start(self) -> None:
        """Connect the consumer and start the consume loop."""
        if self.running:
            logger.warning("Movement broker already running")
            return

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="kafka-consumer")
        self._consumer = await self._in_consumer_thread(self._consumer_factory)
        self._task = asyncio.create_task(self._consume_loop())
        self._task.add_done_callback(self._on_loop_done)
        logger.info(f"Started movement broker on topic {self.topic}")

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Movement broker consume loop failed: {error!r}", exc_info=error)

    async def stop(self) -> None:
        """Cancel the consume loop and close the consumer."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Movement broker cancelled")

        if self._consumer is not None:
            # Queued behind any in-flight poll on the consumer thread
            await self._in_consumer_thread(self._consumer.close)
            self._consumer = None
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
        logger.info("Stopped movement broker")

    async def _consume_loop(self) -> None:
        while True:
            batches = await self._in_consumer_thread(
                self._consumer.poll, timeout_ms=self._poll_timeout_ms, max_records=self._max_records
            )
            for records in batches.values():
                for record in records:
                    await self.handle_message(record.value)

    async def handle_message(self, value: bytes | str | None) -> int:
        """Decode one message and process each event it holds.

        Returns:
            Number of events stored.
        """
        try:
            events = decode_message(value)
        except ParseError as e:
            self._errors += 1
            logger.warning(f"Skipping movement message: {e.message}")
            return 0

        stored = 0
        for event in events:
            self._messages_seen += 1
            self._last_message_at = datetime.now(UTC)
            try:
                await self._process_event(event)
                stored += 1
            except Exception as e:
                self._errors += 1
                logger.warning(f"Failed to process movement event: {e!r}")
        return stored

    async def _process_event(self, event: dict[str, Any]) -> None:
        body = event_body(event)
        identifier = extract_location_identifier(body)
        movement = MovementEvent(
            location_code=extract_location_code(body),
            location_identifier=identifier,
            received_at=datetime.now(UTC),
            payload=body,
        )
        if movement.location_code is None and identifier is not None:
            resolved = await self._resolver.resolve(identifier)
            if resolved is not None:
                movement = movement.rekeyed(resolved)

        self._cache.append(movement)
        self._broadcaster.publish(
            {"type": "movement", "code": movement.location_code, "payload": body}
        )
