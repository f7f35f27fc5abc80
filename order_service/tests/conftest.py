"""
Pytest configuration and fixtures for Order Service tests.
"""

import os
from decimal import Decimal
from typing import Any, AsyncGenerator, List, Optional, Tuple

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

# Set up test environment before the service builds its settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ORDER_DATABASE_URL", "sqlite+aiosqlite:///./order_test.db")
os.environ.setdefault("PRODUCT_DATABASE_URL", "sqlite+aiosqlite:///./product_test.db")
os.environ.setdefault("EVENTS_DATABASE_URL", "sqlite+aiosqlite:///./events_test.db")
os.environ.setdefault("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
os.environ.setdefault("ORDER_EVENTS_TOPIC", "order-events")
os.environ.setdefault("ENABLE_EVENT_CONSUMER", "false")

from order_service.app.core.database import OrderServiceDatabaseManager
from order_service.app.events.base import BaseEvent, EventPublisher
from order_service.app.events.consumers import OrderEventsHandler
from order_service.app.events.producers import OrderEventProducer
from order_service.app.models.base import OrderEventsBase, OrderServiceBase
from order_service.app.repository.event_repository import EventRepository
from order_service.app.repository.order_repository import OrderRepository
from order_service.app.services.order_service import OrderService
from product_service.app.models.base import ProductServiceBase
from product_service.app.models.product import Product
from product_service.app.repository.product_repository import ProductRepository

TEST_TOPIC = "order-events"


class RecordingPublisher(EventPublisher):
    """In-memory stand-in for the Kafka publisher."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.published: List[Tuple[BaseEvent, str, Optional[str]]] = []

    async def publish(self, event: BaseEvent, topic: str, key: Optional[str] = None) -> None:
        if self.error is not None:
            raise self.error
        self.published.append((event, topic, key))


async def _store(url: str, metadata: Any) -> OrderServiceDatabaseManager:
    store = OrderServiceDatabaseManager(url, metadata=metadata)
    await store.create_tables()
    return store


@pytest.fixture
async def order_store(tmp_path) -> AsyncGenerator[OrderServiceDatabaseManager, None]:
    store = await _store(
        f"sqlite+aiosqlite:///{tmp_path}/orders.db", OrderServiceBase.metadata
    )
    yield store
    await store.close()


@pytest.fixture
async def event_store(tmp_path) -> AsyncGenerator[OrderServiceDatabaseManager, None]:
    store = await _store(
        f"sqlite+aiosqlite:///{tmp_path}/events.db", OrderEventsBase.metadata
    )
    yield store
    await store.close()


@pytest.fixture
async def catalog_store(tmp_path) -> AsyncGenerator[OrderServiceDatabaseManager, None]:
    store = await _store(
        f"sqlite+aiosqlite:///{tmp_path}/catalog.db", ProductServiceBase.metadata
    )
    yield store
    await store.close()


@pytest.fixture
async def order_session(order_store) -> AsyncGenerator[AsyncSession, None]:
    async with order_store.async_session_maker() as session:
        yield session


@pytest.fixture
async def catalog_session(catalog_store) -> AsyncGenerator[AsyncSession, None]:
    async with catalog_store.async_session_maker() as session:
        yield session


@pytest.fixture
async def event_session(event_store) -> AsyncGenerator[AsyncSession, None]:
    async with event_store.async_session_maker() as session:
        yield session


@pytest.fixture
async def catalog(catalog_session) -> ProductRepository:
    """Catalog holding ``p1`` at 10.00 and ``p2`` at 2.50."""
    catalog_session.add_all(
        [
            Product(
                id="p1",
                name="Widget",
                code="W-1",
                price=Decimal("10.00"),
                model="W",
                url="https://shop.example.com/w-1",
            ),
            Product(
                id="p2",
                name="Gadget",
                code="G-1",
                price=Decimal("2.50"),
                model="G",
                url="https://shop.example.com/g-1",
            ),
        ]
    )
    await catalog_session.commit()
    return ProductRepository(catalog_session)


@pytest.fixture
def order_repository(order_session) -> OrderRepository:
    return OrderRepository(order_session)


@pytest.fixture
def event_repository(event_session) -> EventRepository:
    return EventRepository(event_session)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def event_producer(publisher) -> OrderEventProducer:
    return OrderEventProducer(publisher, topic=TEST_TOPIC)


@pytest.fixture
def order_service(order_repository, catalog, event_producer) -> OrderService:
    return OrderService(
        order_repository,
        catalog,
        event_producer,
        read_retry_attempts=3,
        read_retry_base_delay=0,
    )


@pytest.fixture
def events_handler(event_store) -> OrderEventsHandler:
    return OrderEventsHandler(
        event_store.async_session_maker, max_retries=2, retry_delay=0
    )
