"""Database configuration for Order Service

The order service talks to three stores: its own Order Store, the Event
Store written by the order-event handler, and the Catalog Store it reads
products from. Each is a lazily built, process-wide handle.
"""

from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..models.base import OrderEventsBase, OrderServiceBase
from .setting import get_settings


class OrderServiceDatabaseManager:
    """Async engine and session factory for one store."""

    def __init__(
        self,
        database_url: str,
        metadata: Optional[MetaData] = None,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 40,
    ) -> None:
        engine_kwargs: Dict[str, Any] = {"echo": echo, "future": True}

        if "sqlite" in database_url:
            # SQLite configuration for development
            engine_kwargs["connect_args"] = {
                "timeout": 60,
                "check_same_thread": False,
            }
        else:
            # PostgreSQL configuration
            engine_kwargs.update(
                {
                    "pool_size": pool_size,
                    "max_overflow": max_overflow,
                    "pool_timeout": 45,
                    "pool_recycle": 3600,
                    "pool_pre_ping": True,
                    "pool_reset_on_return": "commit",
                    "connect_args": {
                        "command_timeout": 30,
                        "server_settings": {"jit": "off"},
                    },
                }
            )

        self.metadata = metadata
        self.async_engine = create_async_engine(database_url, **engine_kwargs)
        self.async_session_maker = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
            autocommit=False,
        )

    async def create_tables(self) -> None:
        """Create the tables of this store (no-op for read-only stores)."""
        if self.metadata is None:
            return
        async with self.async_engine.begin() as conn:
            await conn.run_sync(self.metadata.create_all, checkfirst=True)

    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.async_session_maker() as session:
            yield session

    async def close(self) -> None:
        """Properly close the database engine and connections."""
        await self.async_engine.dispose()


# Global instances
_order_store: Optional[OrderServiceDatabaseManager] = None
_event_store: Optional[OrderServiceDatabaseManager] = None
_catalog_store: Optional[OrderServiceDatabaseManager] = None


def init_databases(
    order_database_url: Optional[str] = None,
    events_database_url: Optional[str] = None,
    product_database_url: Optional[str] = None,
) -> None:
    """Build all store handles from explicit URLs (defaulting to settings)."""
    global _order_store, _event_store, _catalog_store

    settings = get_settings()
    pool_kwargs: Dict[str, Any] = {
        "echo": settings.DEBUG,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
    }

    _order_store = OrderServiceDatabaseManager(
        order_database_url or settings.ORDER_DATABASE_URL,
        metadata=OrderServiceBase.metadata,
        **pool_kwargs,
    )
    _event_store = OrderServiceDatabaseManager(
        events_database_url or settings.EVENTS_DATABASE_URL,
        metadata=OrderEventsBase.metadata,
        **pool_kwargs,
    )
    # Read-only access: the catalog schema is owned by the product service
    _catalog_store = OrderServiceDatabaseManager(
        product_database_url or settings.PRODUCT_DATABASE_URL,
        metadata=None,
        **pool_kwargs,
    )


def _initialized(
    store: Optional[OrderServiceDatabaseManager], name: str
) -> OrderServiceDatabaseManager:
    if store is None:
        raise RuntimeError(f"{name} store is not initialized")
    return store


def get_order_store() -> OrderServiceDatabaseManager:
    if _order_store is None:
        init_databases()
    return _initialized(_order_store, "Order")


def get_event_store() -> OrderServiceDatabaseManager:
    if _event_store is None:
        init_databases()
    return _initialized(_event_store, "Event")


def get_catalog_store() -> OrderServiceDatabaseManager:
    if _catalog_store is None:
        init_databases()
    return _initialized(_catalog_store, "Catalog")


async def close_databases() -> None:
    global _order_store, _event_store, _catalog_store

    for store in (_order_store, _event_store, _catalog_store):
        if store is not None:
            await store.close()
    _order_store = _event_store = _catalog_store = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Order Store session dependency for FastAPI"""
    async for session in get_order_store().get_async_session():
        yield session


async def get_catalog_session() -> AsyncGenerator[AsyncSession, None]:
    """Catalog Store session dependency for FastAPI"""
    async for session in get_catalog_store().get_async_session():
        yield session
