"""
Unit tests for the order-event handler: idempotent, scope-checked appends.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from order_service.app.core.exceptions import (
    TransientError,
    UnauthorizedScopeError,
    ValidationFailedError,
)
from order_service.app.events.base import BaseEvent
from order_service.app.events.schemas import OrderEventType
from order_service.app.repository.event_repository import EventRepository
from order_service.app.schemas.order import (
    CreateOrderRequest,
    OrderItemSnapshot,
    OrderSnapshot,
)

CREATED_AT = datetime(2026, 10, 19, 12, 0, 0)


def snapshot(order_id="o-1", status="CREATED") -> OrderSnapshot:
    return OrderSnapshot(
        customer_id="customer-1",
        order_id=order_id,
        status=status,
        total=Decimal("30.00"),
        items=[
            OrderItemSnapshot(product_id="p1", quantity=3, unit_price=Decimal("10.00"))
        ],
        created_at=CREATED_AT,
    )


@pytest.fixture
def created_event(event_producer) -> BaseEvent:
    return event_producer.build_event(
        OrderEventType.ORDER_CREATED, snapshot(), timestamp=CREATED_AT
    )


class TestOrderEventsHandler:
    @pytest.mark.asyncio
    async def test_event_stored_in_order_partition(
        self, events_handler, created_event, event_repository
    ):
        assert await events_handler.record_event(created_event) is True

        events = await event_repository.list_events("o-1")
        assert len(events) == 1
        assert events[0].pk == "#order_o-1"
        assert events[0].sk == "ORDER_CREATED#2026-10-19T12:00:00"
        assert events[0].event_type == "ORDER_CREATED"
        assert events[0].customer_id == "customer-1"
        assert events[0].message_id == created_event.event_id
        assert events[0].created_at == CREATED_AT
        assert events[0].payload["snapshot"]["total"] == "30.00"

    @pytest.mark.asyncio
    async def test_duplicate_delivery_stores_once(
        self, events_handler, created_event, event_repository
    ):
        await events_handler.handle(created_event)
        await events_handler.handle(created_event)
        # Same notification re-published under a new envelope
        await events_handler.handle(
            created_event.model_copy(update={"event_id": "republished"})
        )

        assert len(await event_repository.list_events("o-1")) == 1

    @pytest.mark.asyncio
    async def test_out_of_order_delivery(
        self, events_handler, event_producer, event_repository
    ):
        deleted = event_producer.build_event(
            OrderEventType.ORDER_DELETED,
            snapshot(status="DELETED"),
            timestamp=CREATED_AT + timedelta(minutes=5),
        )
        created = event_producer.build_event(
            OrderEventType.ORDER_CREATED, snapshot(), timestamp=CREATED_AT
        )

        await events_handler.handle(deleted)
        await events_handler.handle(created)

        events = await event_repository.list_events("o-1")
        assert [e.event_type for e in events] == ["ORDER_CREATED", "ORDER_DELETED"]

    @pytest.mark.asyncio
    async def test_aware_timestamp_normalized(
        self, events_handler, event_producer, event_repository
    ):
        event = event_producer.build_event(
            OrderEventType.ORDER_CREATED,
            snapshot(),
            timestamp=CREATED_AT.replace(tzinfo=timezone.utc),
        )

        await events_handler.handle(event)
        # The same instant without an offset is the same dedup key
        await events_handler.handle(
            event_producer.build_event(
                OrderEventType.ORDER_CREATED, snapshot(), timestamp=CREATED_AT
            )
        )

        assert len(await event_repository.list_events("o-1")) == 1

    @pytest.mark.asyncio
    async def test_partition_taken_from_payload_not_metadata(
        self, events_handler, created_event, event_repository
    ):
        spoofed = created_event.model_copy(
            update={"correlation_id": "#order_o-2", "source_service": "o-2"}
        )

        await events_handler.handle(spoofed)

        assert len(await event_repository.list_events("o-1")) == 1
        assert await event_repository.list_events("o-2") == []

    @pytest.mark.asyncio
    async def test_snapshot_for_another_order_rejected(
        self, events_handler, created_event, event_repository
    ):
        data = dict(created_event.data)
        data["order_id"] = "o-2"
        tampered = created_event.model_copy(update={"data": data})

        with pytest.raises(ValidationFailedError):
            await events_handler.handle(tampered)

        assert await event_repository.list_events("o-1") == []
        assert await event_repository.list_events("o-2") == []

    @pytest.mark.asyncio
    async def test_malformed_payload_rejected(self, events_handler):
        event = BaseEvent(event_type="ORDER_CREATED", data={"order_id": "o-1"})

        with pytest.raises(ValidationFailedError):
            await events_handler.handle(event)

    @pytest.mark.asyncio
    async def test_scope_violation_alerts_without_retry(
        self, events_handler, created_event, caplog
    ):
        append = AsyncMock(side_effect=UnauthorizedScopeError("#order_o-2", "scope"))

        with patch.object(EventRepository, "append", append):
            with caplog.at_level(logging.CRITICAL):
                with pytest.raises(UnauthorizedScopeError):
                    await events_handler.handle(created_event)

        assert append.await_count == 1
        alerts = [
            r
            for r in caplog.records
            if getattr(r, "operation", None) == "event_scope_violation"
        ]
        assert alerts
        assert alerts[0].levelno == logging.CRITICAL
        assert alerts[0].alert is True

    @pytest.mark.asyncio
    async def test_transient_write_failure_retried(self, events_handler, created_event):
        append = AsyncMock(side_effect=[TransientError("event store timed out"), True])

        with patch.object(EventRepository, "append", append):
            assert await events_handler.record_event(created_event) is True

        assert append.await_count == 2

    @pytest.mark.asyncio
    async def test_transient_write_failure_gives_up(self, events_handler, created_event):
        append = AsyncMock(side_effect=TransientError("event store timed out"))

        with patch.object(EventRepository, "append", append):
            with pytest.raises(TransientError):
                await events_handler.record_event(created_event)

        assert append.await_count == events_handler.max_retries


class TestPipeline:
    @pytest.mark.asyncio
    async def test_created_order_lands_in_event_store_once(
        self, order_service, publisher, events_handler, event_repository
    ):
        outcome = await order_service.create_order(
            CreateOrderRequest(
                customer_id="customer-1",
                items=[{"product_id": "p1", "quantity": 3}],
            )
        )
        event, _, _ = publisher.published[0]

        # At-least-once: the topic may hand the same message over twice
        await events_handler.handle(event)
        await events_handler.handle(event)

        events = await event_repository.list_events(outcome.order.order_id)
        assert len(events) == 1
        stored_snapshot = OrderSnapshot.model_validate(events[0].payload["snapshot"])
        assert stored_snapshot == outcome.order.to_snapshot()
        assert stored_snapshot.total == Decimal("30.00")
