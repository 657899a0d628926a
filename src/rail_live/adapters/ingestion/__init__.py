"""Real-time movement ingestion."""

from .movement_broker import BrokerStatus, MovementBroker, create_kafka_consumer

__all__ = ["BrokerStatus", "MovementBroker", "create_kafka_consumer"]
