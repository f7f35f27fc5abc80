"""
Unit tests for the Kafka publisher/subscriber wrappers (aiokafka patched).
"""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest
from aiokafka import TopicPartition
from aiokafka.errors import KafkaConnectionError, KafkaError, KafkaTimeoutError

from order_service.app.core.exceptions import (
    TransientError,
    UnauthorizedScopeError,
    ValidationFailedError,
)
from order_service.app.events.base import BaseEvent, EventHandler
from order_service.app.events.base.kafka_client import (
    KafkaEventPublisher,
    KafkaEventSubscriber,
)


@pytest.fixture
def kafka_producer():
    with patch(
        "order_service.app.events.base.kafka_client.AIOKafkaProducer"
    ) as producer_class:
        producer = producer_class.return_value
        producer.start = AsyncMock()
        producer.stop = AsyncMock()
        producer.send_and_wait = AsyncMock()
        yield producer


@pytest.fixture
def event() -> BaseEvent:
    return BaseEvent(event_type="ORDER_CREATED", data={"order_id": "o-1"})


class RecordingHandler(EventHandler):
    def __init__(self, error=None):
        self.error = error
        self.events = []

    async def handle(self, event: BaseEvent) -> None:
        self.events.append(event)
        if self.error:
            raise self.error


class TestKafkaEventPublisher:
    @pytest.mark.asyncio
    async def test_start_connects(self, kafka_producer):
        publisher = KafkaEventPublisher("localhost:9092", "order-service-producer")

        await publisher.start(timeout=1)

        assert publisher.is_connected is True
        kafka_producer.start.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_gives_up_after_retries(self, kafka_producer):
        kafka_producer.start.side_effect = KafkaConnectionError()
        publisher = KafkaEventPublisher(
            "localhost:9092", "order-service-producer", max_retries=2, retry_delay=0
        )

        await publisher.start(timeout=1)

        assert publisher.is_connected is False
        assert kafka_producer.start.await_count == 2

    @pytest.mark.asyncio
    async def test_publish_keyed_json_payload(self, kafka_producer, event):
        publisher = KafkaEventPublisher("localhost:9092", "order-service-producer")
        await publisher.start(timeout=1)

        await publisher.publish(event, topic="order-events", key="o-1")

        kafka_producer.send_and_wait.assert_awaited_once_with(
            topic="order-events", value=event.model_dump(mode="json"), key="o-1"
        )

    @pytest.mark.asyncio
    async def test_publish_requires_connection(self, kafka_producer, event):
        publisher = KafkaEventPublisher("localhost:9092", "order-service-producer")

        with pytest.raises(KafkaConnectionError):
            await publisher.publish(event, topic="order-events", key="o-1")

        kafka_producer.send_and_wait.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_propagates(self, kafka_producer, event):
        kafka_producer.send_and_wait.side_effect = KafkaTimeoutError()
        publisher = KafkaEventPublisher("localhost:9092", "order-service-producer")
        await publisher.start(timeout=1)

        with pytest.raises(KafkaTimeoutError):
            await publisher.publish(event, topic="order-events", key="o-1")

    @pytest.mark.asyncio
    async def test_publish_is_bounded_by_timeout(self, kafka_producer, event):
        async def never_acknowledged(**kwargs):
            await asyncio.sleep(1)

        kafka_producer.send_and_wait.side_effect = never_acknowledged
        publisher = KafkaEventPublisher(
            "localhost:9092", "order-service-producer", publish_timeout=0.01
        )
        await publisher.start(timeout=1)

        with pytest.raises(asyncio.TimeoutError):
            await publisher.publish(event, topic="order-events", key="o-1")

    @pytest.mark.asyncio
    async def test_stop_resets_connection(self, kafka_producer):
        publisher = KafkaEventPublisher("localhost:9092", "order-service-producer")
        await publisher.start(timeout=1)

        await publisher.stop()

        assert publisher.is_connected is False
        assert publisher.producer is None
        kafka_producer.stop.assert_awaited_once()


class TestKafkaEventSubscriber:
    @pytest.fixture
    def subscriber(self) -> KafkaEventSubscriber:
        return KafkaEventSubscriber(
            "localhost:9092", "order-events-handler", "order-service-consumer"
        )

    @pytest.mark.asyncio
    async def test_dispatch_by_event_type(self, subscriber, event):
        created, deleted = RecordingHandler(), RecordingHandler()
        subscriber.handlers = {"ORDER_CREATED": [created], "ORDER_DELETED": [deleted]}

        await subscriber.dispatch(event.model_dump(mode="json"))

        assert [e.event_id for e in created.events] == [event.event_id]
        assert deleted.events == []

    @pytest.mark.asyncio
    async def test_malformed_message_discarded(self, subscriber):
        handler = RecordingHandler()
        subscriber.handlers = {"ORDER_CREATED": [handler]}

        await subscriber.dispatch({"data": {"order_id": "o-1"}})

        assert handler.events == []

    @pytest.mark.asyncio
    async def test_transient_handler_failure_propagates(self, subscriber, event):
        handler = RecordingHandler(error=TransientError("event store timed out"))
        subscriber.handlers = {"ORDER_CREATED": [handler]}

        with pytest.raises(TransientError):
            await subscriber.dispatch(event.model_dump(mode="json"))

    @pytest.mark.asyncio
    async def test_rejected_event_does_not_stop_other_handlers(self, subscriber, event):
        rejecting = RecordingHandler(error=ValidationFailedError("bad snapshot"))
        healthy = RecordingHandler()
        subscriber.handlers = {"ORDER_CREATED": [rejecting, healthy]}

        await subscriber.dispatch(event.model_dump(mode="json"))

        assert len(rejecting.events) == 1
        assert len(healthy.events) == 1


class FlakyHandler(RecordingHandler):
    """Fails the first delivery only."""

    async def handle(self, event: BaseEvent) -> None:
        self.events.append(event)
        error, self.error = self.error, None
        if error:
            raise error


class FakeConsumer:
    """Async-iterable stand-in for AIOKafkaConsumer.

    ``script`` items are either messages or exceptions raised from the
    iterator. ``seek`` queues the rewound message for redelivery.
    """

    def __init__(self, script):
        self.script = list(script)
        self.delivered = {}
        self.commit = AsyncMock()
        self.seeks = []

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.script:
            raise StopAsyncIteration
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        self.delivered[item.offset] = item
        return item

    def seek(self, partition, offset):
        self.seeks.append((partition, offset))
        if offset in self.delivered:
            self.script.insert(0, self.delivered.pop(offset))


def kafka_message(event: BaseEvent, offset: int = 7) -> Mock:
    return Mock(
        topic="order-events",
        partition=0,
        offset=offset,
        value=event.model_dump(mode="json"),
    )


class TestKafkaEventConsumption:
    @pytest.fixture
    def subscriber(self) -> KafkaEventSubscriber:
        subscriber = KafkaEventSubscriber(
            "localhost:9092",
            "order-events-handler",
            "order-service-consumer",
            retry_delay=0,
        )
        subscriber.running = True
        return subscriber

    @pytest.mark.asyncio
    async def test_success_commits_offset(self, subscriber, event):
        handler = RecordingHandler()
        subscriber.handlers = {"ORDER_CREATED": [handler]}
        consumer = FakeConsumer([kafka_message(event)])

        await subscriber._consume_messages("order-events", consumer)

        assert len(handler.events) == 1
        consumer.commit.assert_awaited_once()
        assert consumer.seeks == []

    @pytest.mark.asyncio
    async def test_transient_failure_leaves_offset_uncommitted(self, subscriber, event):
        handler = RecordingHandler(error=TransientError("event store timed out"))
        subscriber.handlers = {"ORDER_CREATED": [handler]}
        consumer = FakeConsumer([])

        await subscriber._process_message(consumer, kafka_message(event, offset=7))

        assert consumer.commit.await_count == 0
        assert consumer.seeks == [(TopicPartition("order-events", 0), 7)]

    @pytest.mark.asyncio
    async def test_failed_message_redelivered_then_committed(self, subscriber, event):
        handler = FlakyHandler(TransientError("event store timed out"))
        subscriber.handlers = {"ORDER_CREATED": [handler]}
        consumer = FakeConsumer([kafka_message(event, offset=7)])

        await subscriber._consume_messages("order-events", consumer)

        assert len(handler.events) == 2
        assert consumer.seeks == [(TopicPartition("order-events", 0), 7)]
        consumer.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_scope_violation_is_committed_after_alert(self, subscriber, event):
        handler = RecordingHandler(
            error=UnauthorizedScopeError("#customer_c-1", "#order_")
        )
        subscriber.handlers = {"ORDER_CREATED": [handler]}
        consumer = FakeConsumer([kafka_message(event)])

        await subscriber._consume_messages("order-events", consumer)

        consumer.commit.assert_awaited_once()
        assert consumer.seeks == []

    @pytest.mark.asyncio
    async def test_consumer_error_resumes_consumption(self, subscriber, event):
        handler = RecordingHandler()
        subscriber.handlers = {"ORDER_CREATED": [handler]}
        consumer = FakeConsumer([KafkaError(), kafka_message(event)])

        await subscriber._consume_messages("order-events", consumer)

        assert subscriber.consumer_restarts == 1
        assert len(handler.events) == 1
        consumer.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health_reflects_consume_task(self, subscriber):
        assert subscriber.health_check() is False

        blocker = asyncio.Event()
        task = asyncio.create_task(blocker.wait())
        subscriber._tasks.append(task)
        assert subscriber.health_check() is True

        blocker.set()
        await task
        assert subscriber.health_check() is False
