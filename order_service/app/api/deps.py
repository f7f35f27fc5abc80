"""
FastAPI dependency injection for Order Service

Provides database sessions for the order and catalog stores, the order
handler, and correlation ID extraction. Event publishing is handled by the
core.events module.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from product_service.app.repository.product_repository import ProductRepository

from ..core.database import get_catalog_session, get_db_session
from ..core.events import get_event_producer
from ..core.setting import get_settings
from ..events.producers import OrderEventProducer
from ..repository.order_repository import OrderRepository
from ..services.order_service import OrderService

# =====================================================
# DATABASE DEPENDENCIES
# =====================================================


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide async Order Store session"""
    async for session in get_db_session():
        yield session


async def get_catalog_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide async Catalog Store session (read-only use)"""
    async for session in get_catalog_session():
        yield session


# =====================================================
# EVENT PUBLISHER DEPENDENCIES
# =====================================================


def get_order_event_producer() -> Optional[OrderEventProducer]:
    """Provide OrderEventProducer instance"""
    return get_event_producer()


# =====================================================
# SERVICE DEPENDENCIES
# =====================================================


def get_order_service(
    session: AsyncSession = Depends(get_async_session),
    catalog_session: AsyncSession = Depends(get_catalog_async_session),
    event_producer: Optional[OrderEventProducer] = Depends(get_order_event_producer),
) -> OrderService:
    """Provide OrderService wired to the order store, catalog and producer"""
    settings = get_settings()
    return OrderService(
        OrderRepository(session, timeout=settings.STORE_TIMEOUT_SECONDS),
        ProductRepository(catalog_session, timeout=settings.STORE_TIMEOUT_SECONDS),
        event_producer,
        read_retry_attempts=settings.READ_RETRY_ATTEMPTS,
        read_retry_base_delay=settings.READ_RETRY_BASE_DELAY,
    )


# =====================================================
# REQUEST CONTEXT DEPENDENCIES
# =====================================================


def get_correlation_id(request: Request) -> Optional[str]:
    """Extract correlation ID from request headers"""
    return (
        request.headers.get("X-Correlation-ID")
        or request.headers.get("correlation-id")
        or request.headers.get("x-request-id")
    )


CorrelationIdDep = Depends(get_correlation_id)
OrderServiceDep = Depends(get_order_service)
