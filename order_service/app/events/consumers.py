"""
Order-event handler: turns order lifecycle notifications into event-store
records.

Deliveries are at-least-once and unordered. The partition key is derived
from the payload's ``order_id`` only, and the row key from the payload's
event type and source timestamp, so a redelivery lands on the row it
already wrote.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.exceptions import UnauthorizedScopeError, ValidationFailedError
from ..core.resilience import retry_transient
from ..core.scope import WriteScope, event_sort_key, scope_key_for
from ..repository.event_repository import EventRepository
from ..schemas.order import OrderEventRecord
from ..utils.logging import setup_order_logging as setup_logging
from .base import BaseEvent, EventHandler
from .base.kafka_client import KafkaEventSubscriber
from .schemas import OrderEventData, OrderEventType

logger = setup_logging("order-consumer-events", log_level="INFO")


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class OrderEventsHandler(EventHandler):
    """Persist ORDER_CREATED / ORDER_DELETED notifications"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float = 5.0,
        max_retries: int = 3,
        retry_delay: float = 0.1,
    ):
        self.session_factory = session_factory
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def build_record(self, event: BaseEvent) -> OrderEventRecord:
        """Map a notification onto the row it must produce"""
        try:
            data = OrderEventData.model_validate(event.data)
        except ValidationError as e:
            raise ValidationFailedError(
                "Malformed order event payload",
                details={
                    "event_id": event.event_id,
                    "errors": e.errors(include_url=False, include_context=False),
                },
            ) from e

        if data.snapshot.order_id != data.order_id:
            raise ValidationFailedError(
                "Order event snapshot does not belong to its order",
                details={
                    "order_id": data.order_id,
                    "snapshot_order_id": data.snapshot.order_id,
                },
            )

        created_at = _as_naive_utc(data.timestamp)
        return OrderEventRecord(
            pk=scope_key_for(data.order_id),
            sk=event_sort_key(data.event_type.value, created_at),
            order_id=data.order_id,
            customer_id=data.snapshot.customer_id,
            event_type=data.event_type.value,
            payload=data.to_dict(),
            message_id=event.event_id,
            created_at=created_at,
        )

    async def record_event(self, event: BaseEvent) -> bool:
        """Append the event; False if this notification was already stored"""
        record = self.build_record(event)
        scope = WriteScope(record.order_id)

        async def append() -> bool:
            async with self.session_factory() as session:
                return await EventRepository(session, self.timeout).append(record, scope)

        try:
            stored = await retry_transient(
                append,
                "append_order_event",
                max_retries=self.max_retries,
                retry_delay=self.retry_delay,
            )
        except UnauthorizedScopeError as e:
            logger.critical(
                f"Event write outside its order scope rejected: {e.message}",
                extra={
                    "order_id": record.order_id,
                    "partition_key": e.partition_key,
                    "event_id": event.event_id,
                    "operation": "event_scope_violation",
                    "alert": True,
                },
            )
            raise

        logger.info(
            "Order event stored" if stored else "Duplicate order event ignored",
            extra={
                "order_id": record.order_id,
                "event_type": record.event_type,
                "pk": record.pk,
                "sk": record.sk,
                "event_id": event.event_id,
                "stored": stored,
                "operation": "record_order_event",
            },
        )
        return stored

    async def handle(self, event: BaseEvent) -> None:
        await self.record_event(event)


class OrderEventConsumer:
    """Subscribes the order-event handler to the order events topic"""

    def __init__(
        self,
        subscriber: KafkaEventSubscriber,
        handler: OrderEventsHandler,
        topic: str,
    ):
        self.subscriber = subscriber
        self.handler = handler
        self.topic = topic

    def is_running(self) -> bool:
        return self.subscriber.health_check()

    async def start(self) -> None:
        for event_type in OrderEventType:
            await self.subscriber.subscribe(
                topic=self.topic,
                event_type=event_type.value,
                handler=self.handler,
            )

        logger.info(
            "Started consuming order events",
            extra={
                "topic": self.topic,
                "event_types": [event_type.value for event_type in OrderEventType],
            },
        )

    async def stop(self) -> None:
        await self.subscriber.stop()
        logger.info("Stopped order event consumer")


# Consumer instance management
_consumer_instance: Optional[OrderEventConsumer] = None


async def get_order_event_consumer(
    subscriber: KafkaEventSubscriber,
    handler: OrderEventsHandler,
    topic: str,
) -> OrderEventConsumer:
    """Get or create the order event consumer instance"""
    global _consumer_instance

    if _consumer_instance is None:
        _consumer_instance = OrderEventConsumer(subscriber, handler, topic)
        await _consumer_instance.start()

    return _consumer_instance


def order_event_consumer_status() -> Optional[bool]:
    """None when no consumer was started, else whether it is still consuming"""
    if _consumer_instance is None:
        return None
    return _consumer_instance.is_running()


async def shutdown_order_event_consumer() -> None:
    """Shutdown the order event consumer"""
    global _consumer_instance

    if _consumer_instance is not None:
        await _consumer_instance.stop()
        _consumer_instance = None
