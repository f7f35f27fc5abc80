"""
Pytest configuration and fixtures for Product Service tests.
"""

import os
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

# Set up test environment before the service builds its settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PRODUCT_DATABASE_URL", "sqlite+aiosqlite:///./product_test.db")

from product_service.app.core.database import ProductServiceDatabaseManager
from product_service.app.models.product import Product
from product_service.app.repository.product_repository import ProductRepository
from product_service.app.schemas.product import ProductCreate


@pytest.fixture
async def database_manager(tmp_path) -> AsyncGenerator[ProductServiceDatabaseManager, None]:
    """Catalog store backed by a fresh SQLite file."""
    manager = ProductServiceDatabaseManager(f"sqlite+aiosqlite:///{tmp_path}/catalog.db")
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
async def db_session(database_manager) -> AsyncGenerator[AsyncSession, None]:
    async with database_manager.async_session_maker() as session:
        yield session


@pytest.fixture
def product_repository(db_session) -> ProductRepository:
    return ProductRepository(db_session, timeout=5.0)


@pytest.fixture
def product_payload() -> ProductCreate:
    return ProductCreate(
        name="Mechanical Keyboard",
        code="KB-01",
        price=Decimal("10.00"),
        model="K1",
        url="https://shop.example.com/kb-01",
    )


@pytest.fixture
async def stored_product(db_session) -> Product:
    """Product ``p1`` priced at 10.00, inserted directly into the store."""
    product = Product(
        id="p1",
        name="Widget",
        code="W-1",
        price=Decimal("10.00"),
        model="W",
        url="https://shop.example.com/w-1",
    )
    db_session.add(product)
    await db_session.commit()
    return product
