"""
FastAPI dependency injection for Product Service

Provides database sessions, the catalog repository and correlation IDs.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db_session
from ..core.setting import get_settings
from ..repository.product_repository import ProductRepository

# =====================================================
# DATABASE DEPENDENCIES
# =====================================================


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide async database session"""
    async for session in get_db_session():
        yield session


# =====================================================
# REPOSITORY DEPENDENCIES
# =====================================================


def get_product_repository(
    session: AsyncSession = Depends(get_async_session),
) -> ProductRepository:
    """Provide ProductRepository bound to a request-scoped session"""
    return ProductRepository(session, timeout=get_settings().STORE_TIMEOUT_SECONDS)


# =====================================================
# REQUEST CONTEXT DEPENDENCIES
# =====================================================


def get_correlation_id(request: Request) -> Optional[str]:
    """Extract correlation ID from request headers"""
    return request.headers.get("X-Correlation-ID") or request.headers.get(
        "x-request-id"
    )


CorrelationIdDep = Depends(get_correlation_id)
ProductRepositoryDep = Depends(get_product_repository)
