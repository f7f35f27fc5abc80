"""
Order Service Event Management
Initializes the Kafka publisher used by the order handler and the
subscription that feeds the order-event handler.
"""

import logging
from typing import Optional

from aiokafka.errors import KafkaError  # type: ignore

from ..events.base.kafka_client import KafkaEventPublisher, KafkaEventSubscriber
from ..events.consumers import (
    OrderEventsHandler,
    get_order_event_consumer,
    order_event_consumer_status,
    shutdown_order_event_consumer,
)
from ..events.producers import OrderEventProducer
from .database import get_event_store
from .setting import get_settings

logger = logging.getLogger(__name__)

# Global instances
_kafka_publisher: Optional[KafkaEventPublisher] = None
_order_event_producer: Optional[OrderEventProducer] = None


async def init_events() -> None:
    """Initialize event publishing and, if enabled, event consumption"""
    global _kafka_publisher, _order_event_producer

    settings = get_settings()

    _kafka_publisher = KafkaEventPublisher(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        client_id=f"{settings.SERVICE_NAME}-producer",
        max_retries=10,
        retry_delay=2.0,
        publish_timeout=settings.PUBLISH_TIMEOUT_SECONDS,
    )
    await _kafka_publisher.start(timeout=30.0)

    # Created even when disconnected: publishes then fail and are reported
    # as published=false instead of blocking order writes.
    _order_event_producer = OrderEventProducer(
        _kafka_publisher,
        topic=settings.ORDER_EVENTS_TOPIC,
        source_service=settings.SERVICE_NAME,
    )
    logger.info("Event publishing infrastructure initialized")

    if not settings.ENABLE_EVENT_CONSUMER:
        return

    handler = OrderEventsHandler(
        get_event_store().async_session_maker,
        timeout=settings.STORE_TIMEOUT_SECONDS,
        max_retries=settings.EVENT_WRITE_RETRY_ATTEMPTS,
        retry_delay=settings.READ_RETRY_BASE_DELAY,
    )
    subscriber = KafkaEventSubscriber(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        group_id=settings.KAFKA_GROUP_ID,
        client_id=f"{settings.SERVICE_NAME}-consumer",
    )
    try:
        await get_order_event_consumer(subscriber, handler, settings.ORDER_EVENTS_TOPIC)
    except KafkaError as e:
        logger.error(
            f"Order event consumer failed to start: {e}",
            extra={"operation": "consumer_start_failed"},
        )


async def close_events() -> None:
    """Close event publishing and consumption"""
    global _kafka_publisher, _order_event_producer

    try:
        await shutdown_order_event_consumer()
        if _kafka_publisher:
            await _kafka_publisher.stop()
            logger.info("Event publishing infrastructure closed")
    finally:
        _kafka_publisher = None
        _order_event_producer = None


def get_event_producer() -> Optional[OrderEventProducer]:
    """Get the order event producer instance"""
    return _order_event_producer


async def health_check_events() -> bool:
    """Check if event publishing is healthy"""
    if _kafka_publisher:
        return await _kafka_publisher.health_check()
    return False


def event_consumer_status() -> str:
    """Liveness of the in-process order-event consumer"""
    if not get_settings().ENABLE_EVENT_CONSUMER:
        return "disabled"
    running = order_event_consumer_status()
    if running is None:
        return "not_started"
    return "healthy" if running else "stopped"
