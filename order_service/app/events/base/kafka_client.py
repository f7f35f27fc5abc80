import asyncio
import json
from typing import Dict, List, Optional

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer, TopicPartition  # type: ignore
from aiokafka.errors import KafkaConnectionError, KafkaError  # type: ignore
from pydantic import ValidationError

from ...core.exceptions import ServiceError
from ...core.setting import get_settings
from ...utils.logging import setup_order_logging as setup_logging
from . import BaseEvent, EventHandler, EventPublisher, EventSubscriber

logger = setup_logging("order_service.events.kafka", log_level=get_settings().LOG_LEVEL)

MAX_CONSUMER_BACKOFF = 60.0


class KafkaEventPublisher(EventPublisher):
    """
    Order Service Kafka publisher with connection retry logic.

    ``publish`` never swallows failures: the caller decides what an
    unpublished event means.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str,
        max_retries: int = 10,
        retry_delay: float = 2.0,
        publish_timeout: float = 5.0,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.client_id = client_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.publish_timeout = publish_timeout
        self.producer: Optional[AIOKafkaProducer] = None
        self.is_connected = False
        self._connection_lock = asyncio.Lock()

    async def start(self, timeout: float = 30.0) -> None:
        """Start Kafka producer with retry logic"""
        async with self._connection_lock:
            if self.producer and self.is_connected:
                return

            self.producer = AIOKafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                client_id=self.client_id,
                value_serializer=lambda x: json.dumps(x, default=str).encode("utf-8"),
                key_serializer=lambda x: x.encode("utf-8") if x else None,
                acks="all",
                retry_backoff_ms=1000,
                request_timeout_ms=30000,
            )

            # Retry connection with exponential backoff
            for attempt in range(self.max_retries):
                try:
                    logger.info(
                        "Attempting Kafka connection",
                        extra={
                            "attempt": attempt + 1,
                            "max_retries": self.max_retries,
                            "operation": "kafka_connect",
                        },
                    )
                    await asyncio.wait_for(self.producer.start(), timeout=timeout)
                    self.is_connected = True
                    logger.info("Successfully connected to Kafka")
                    return

                except (KafkaConnectionError, asyncio.TimeoutError) as e:
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"Kafka connection attempt {attempt + 1} failed: {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(delay)

            logger.error(
                f"Failed to connect to Kafka after {self.max_retries} attempts. "
                "Orders will be committed with published=false until it recovers",
                extra={"operation": "kafka_connect_failed"},
            )
            self.is_connected = False

    async def stop(self) -> None:
        """Stop Kafka producer"""
        async with self._connection_lock:
            if self.producer:
                try:
                    await self.producer.stop()
                    logger.info("Kafka producer stopped")
                except KafkaError as e:
                    logger.warning(
                        "Error stopping Kafka producer",
                        extra={"error": str(e), "operation": "stop_producer"},
                    )
                finally:
                    self.producer = None
                    self.is_connected = False

    async def publish(self, event: BaseEvent, topic: str, key: Optional[str] = None) -> None:
        """Send one event and wait for the broker acknowledgement"""
        if not self.is_connected or not self.producer:
            raise KafkaConnectionError("Kafka producer not connected")

        try:
            await asyncio.wait_for(
                self.producer.send_and_wait(
                    topic=topic,
                    value=event.model_dump(mode="json"),
                    key=key,
                ),
                timeout=self.publish_timeout,
            )
        except (KafkaError, asyncio.TimeoutError) as e:
            logger.error(
                "Failed to publish event to Kafka",
                extra={
                    "event_type": event.event_type,
                    "event_id": event.event_id,
                    "topic": topic,
                    "error": str(e) or type(e).__name__,
                    "operation": "publish_event_failed",
                },
            )
            raise

        logger.info(
            "Published event to Kafka topic",
            extra={
                "event_type": event.event_type,
                "event_id": event.event_id,
                "topic": topic,
                "key": key,
                "operation": "publish_event",
            },
        )

    async def health_check(self) -> bool:
        """Check if Kafka connection is healthy"""
        if not self.producer or not self.is_connected:
            return False
        try:
            metadata = await self.producer.client.fetch_all_metadata()
            return len(metadata.brokers()) > 0
        except KafkaError as e:
            logger.warning(
                "Kafka health check failed",
                extra={"error": str(e), "operation": "health_check"},
            )
            return False


class KafkaEventSubscriber(EventSubscriber):
    """
    Order Service Kafka subscriber.

    Offsets are committed only once a message is handled or rejected for
    good. A retryable failure rewinds the partition to that message, so it
    is redelivered (at-least-once).
    """

    def __init__(
        self,
        bootstrap_servers: str,
        group_id: str,
        client_id: str,
        max_retries: int = 5,
        retry_delay: float = 2.0,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.group_id = group_id
        self.client_id = client_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.consumers: Dict[str, AIOKafkaConsumer] = {}
        self.handlers: Dict[str, List[EventHandler]] = {}
        self._tasks: List[asyncio.Task] = []
        self.running = False
        self.consumer_restarts = 0

    async def subscribe(self, topic: str, event_type: str, handler: EventHandler) -> None:
        """Register ``handler`` and start consuming ``topic`` if not already"""
        self.handlers.setdefault(event_type, []).append(handler)

        if topic in self.consumers:
            return

        consumer = AIOKafkaConsumer(
            topic,
            bootstrap_servers=self.bootstrap_servers,
            group_id=self.group_id,
            client_id=f"{self.client_id}-{topic}",
            value_deserializer=lambda x: json.loads(x.decode("utf-8")),
            enable_auto_commit=False,
            auto_offset_reset="earliest",
        )

        for attempt in range(self.max_retries):
            try:
                await consumer.start()
                break
            except KafkaConnectionError as e:
                if attempt >= self.max_retries - 1:
                    logger.error(
                        "Failed to subscribe to Kafka topic",
                        extra={
                            "topic": topic,
                            "error": str(e),
                            "operation": "subscribe_failed",
                        },
                    )
                    raise
                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    f"Kafka subscriber connection attempt {attempt + 1} failed: {e}. "
                    f"Retrying in {delay} seconds..."
                )
                await asyncio.sleep(delay)

        self.consumers[topic] = consumer
        self.running = True
        self._tasks.append(asyncio.create_task(self._consume_messages(topic, consumer)))
        logger.info(
            "Subscribed to event type on Kafka topic",
            extra={"event_type": event_type, "topic": topic, "operation": "subscribe"},
        )

    async def dispatch(self, payload: dict) -> None:
        """Hand one decoded message to every handler registered for its type.

        Terminal failures (non-retryable ``ServiceError``) are logged and the
        message counts as handled. Anything else is re-raised so the caller
        leaves the offset uncommitted.
        """
        try:
            event = BaseEvent.model_validate(payload)
        except ValidationError as e:
            logger.error(
                "Discarding malformed event",
                extra={"error": str(e), "operation": "malformed_event"},
            )
            return

        for handler in self.handlers.get(event.event_type, []):
            try:
                await handler.handle(event)
            except ServiceError as e:
                if e.retryable:
                    raise
                logger.error(
                    "Event handler rejected event",
                    extra={
                        "event_type": event.event_type,
                        "event_id": event.event_id,
                        "handler": type(handler).__name__,
                        "error": e.message,
                        "error_type": e.error_type,
                        "operation": "handler_rejected",
                    },
                )

    async def _process_message(self, consumer: AIOKafkaConsumer, message) -> bool:
        """Dispatch and commit one message; rewind to it if handling failed"""
        try:
            await self.dispatch(message.value)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "Event handling failed, message will be redelivered",
                extra={
                    "topic": message.topic,
                    "partition": message.partition,
                    "offset": message.offset,
                    "error": str(e) or type(e).__name__,
                    "operation": "handler_retry",
                },
            )
            consumer.seek(TopicPartition(message.topic, message.partition), message.offset)
            return False

        await consumer.commit()
        return True

    async def _consume_messages(self, topic: str, consumer: AIOKafkaConsumer) -> None:
        failures = 0
        while self.running:
            try:
                async for message in consumer:
                    if not self.running:
                        return
                    if await self._process_message(consumer, message):
                        failures = 0
                    else:
                        failures += 1
                        await asyncio.sleep(self._backoff(failures))
                return
            except asyncio.CancelledError:
                raise
            except KafkaError as e:
                failures += 1
                self.consumer_restarts += 1
                delay = self._backoff(failures)
                logger.error(
                    f"Kafka consumer error, resuming in {delay} seconds",
                    extra={
                        "topic": topic,
                        "error": str(e),
                        "restarts": self.consumer_restarts,
                        "operation": "consumer_error",
                    },
                )
                await asyncio.sleep(delay)

    def _backoff(self, failures: int) -> float:
        return min(self.retry_delay * (2 ** (failures - 1)), MAX_CONSUMER_BACKOFF)

    def health_check(self) -> bool:
        """True while every consume loop is still running"""
        return self.running and bool(self._tasks) and not any(
            task.done() for task in self._tasks
        )

    async def stop(self) -> None:
        """Stop all consumers"""
        self.running = False

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        for topic, consumer in self.consumers.items():
            try:
                await consumer.stop()
                logger.info(
                    "Stopped Kafka consumer for topic",
                    extra={"topic": topic, "operation": "stop_consumer"},
                )
            except KafkaError as e:
                logger.warning(
                    "Error stopping Kafka consumer",
                    extra={"topic": topic, "error": str(e), "operation": "stop_consumer_error"},
                )

        self.consumers.clear()
        self.handlers.clear()
        logger.info("All Kafka consumers stopped")
