from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..models.base import ProductServiceBase
from ..utils.logging import setup_product_logging as setup_logging
from .setting import get_settings

# Setup structured logging for database operations
logger = setup_logging("product_service.database", log_level=get_settings().LOG_LEVEL)


def _mask_url(database_url: str) -> str:
    if "@" not in database_url:
        return database_url
    return database_url.split("://")[0] + "://***@" + database_url.split("@")[-1]


class ProductServiceDatabaseManager:
    """Catalog store handle: one async engine plus its session factory."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 25,
        max_overflow: int = 50,
    ) -> None:
        logger.info(
            "Initializing Product Service database manager",
            extra={
                "operation": "database_manager_init",
                "database_url": _mask_url(database_url),
                "echo": echo,
                "service": "product_service",
            },
        )

        engine_kwargs: Dict[str, Any] = {"echo": echo, "future": True}

        if "sqlite" in database_url:
            # SQLite configuration for development and tests
            engine_kwargs["connect_args"] = {
                "timeout": 60,
                "check_same_thread": False,
            }
        else:
            # PostgreSQL configuration for the catalog store
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
                        "prepared_statement_cache_size": 0,
                    },
                }
            )

        self.database_url = database_url
        self.async_engine = create_async_engine(database_url, **engine_kwargs)
        self.async_session_maker = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
            autocommit=False,
        )

    async def create_tables(self) -> None:
        """Create all Product Service database tables."""
        try:
            async with self.async_engine.begin() as conn:
                await conn.run_sync(
                    ProductServiceBase.metadata.create_all, checkfirst=True
                )
            logger.info(
                "Database tables created successfully",
                extra={"operation": "create_tables", "service": "product_service"},
            )
        except Exception as e:
            logger.error(
                "Database table creation failed",
                extra={
                    "operation": "create_tables",
                    "error": str(e),
                    "service": "product_service",
                },
            )
            raise

    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session for Product Service."""
        async with self.async_session_maker() as session:
            yield session

    async def close(self) -> None:
        """Properly close the Product Service database engine and connections."""
        await self.async_engine.dispose()
        logger.info(
            "Product Service database connections closed",
            extra={"operation": "database_close", "service": "product_service"},
        )


# Process-wide catalog store handle, built lazily from explicit settings
_database_manager: Optional[ProductServiceDatabaseManager] = None


def init_database(
    database_url: Optional[str] = None, echo: Optional[bool] = None
) -> ProductServiceDatabaseManager:
    """Build the catalog store handle from explicit parameters (or settings)."""
    global _database_manager

    settings = get_settings()
    _database_manager = ProductServiceDatabaseManager(
        database_url=database_url or settings.PRODUCT_DATABASE_URL,
        echo=settings.DEBUG if echo is None else echo,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
    )
    return _database_manager


def get_database_manager() -> ProductServiceDatabaseManager:
    """Return the catalog store handle, initialising it on first use."""
    if _database_manager is None:
        return init_database()
    return _database_manager


async def close_database() -> None:
    global _database_manager

    if _database_manager is not None:
        await _database_manager.close()
    _database_manager = None


# Dependency injection function for FastAPI
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for dependency injection."""
    async for session in get_database_manager().get_async_session():
        yield session
