"""
Order Service FastAPI Application
================================

Order handler HTTP surface plus, in the same process, the order-event
handler consuming the order events topic.
"""

import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.health import router as health_router
from .api.v1.orders import router as orders_router
from .core.database import (
    close_databases,
    get_event_store,
    get_order_store,
    init_databases,
)
from .core.events import close_events, init_events
from .core.setting import get_settings
from .middleware.error import setup_order_error_handling
from .utils.logging import setup_order_logging as setup_logging

settings = get_settings()
enable_file_logging = settings.ENVIRONMENT.lower() in ["production", "staging"]

logger = setup_logging(
    "order_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    startup_start = time.time()

    try:
        logger.info(
            "Starting order service initialization",
            extra={
                "environment": settings.ENVIRONMENT,
                "debug_mode": settings.DEBUG,
                "file_logging_enabled": enable_file_logging,
                "service_version": settings.APP_VERSION,
            },
        )

        # Database initialization
        db_start = time.time()
        init_databases(
            settings.ORDER_DATABASE_URL,
            settings.EVENTS_DATABASE_URL,
            settings.PRODUCT_DATABASE_URL,
        )
        await get_order_store().create_tables()
        await get_event_store().create_tables()
        db_duration = int((time.time() - db_start) * 1000)
        logger.info(
            "Database initialization completed", extra={"duration_ms": db_duration}
        )

        # Event publisher and consumer initialization
        event_start = time.time()
        await init_events()
        event_duration = int((time.time() - event_start) * 1000)
        logger.info("Event infrastructure started", extra={"duration_ms": event_duration})

        logger.info(
            "Order service started successfully",
            extra={
                "total_startup_duration_ms": int((time.time() - startup_start) * 1000),
                "database_init_ms": db_duration,
                "event_init_ms": event_duration,
            },
        )

    except Exception as e:
        logger.error(
            "Failed to start order service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    yield

    shutdown_start = time.time()
    logger.info("Starting order service shutdown")
    try:
        await close_events()
    finally:
        await close_databases()
    logger.info(
        "Order service shutdown completed",
        extra={"shutdown_duration_ms": int((time.time() - shutdown_start) * 1000)},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
    )

    setup_order_error_handling(app)

    routers_info: list[dict[str, Any]] = []

    app.include_router(health_router, tags=["Health"])
    routers_info.append({"router": "health", "prefix": "", "tags": ["Health"]})

    app.include_router(orders_router, prefix="/api/v1", tags=["Order Management"])
    routers_info.append(
        {"router": "orders", "prefix": "/api/v1", "tags": ["Order Management"]}
    )

    logger.info(
        "API routes configured",
        extra={"total_routers": len(routers_info), "routers": routers_info},
    )

    return app


app = create_app()
