"""
Product Service FastAPI Application
==================================

Entry point for the catalog service: fetch and admin endpoints over the
product catalog store.
"""

import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.health import router as health_router
from .api.v1.products import router as products_router
from .core.database import close_database, init_database
from .core.setting import get_settings
from .utils.logging import setup_product_logging as setup_logging

settings = get_settings()
enable_file_logging = settings.ENVIRONMENT.lower() in ["production", "staging"]

logger = setup_logging(
    "product_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown."""
    startup_start = time.time()

    try:
        logger.info(
            "Starting product service initialization",
            extra={
                "environment": settings.ENVIRONMENT,
                "debug_mode": settings.DEBUG,
                "service_version": settings.APP_VERSION,
            },
        )

        database_manager = init_database(settings.PRODUCT_DATABASE_URL)
        await database_manager.create_tables()

        logger.info(
            "Product service started successfully",
            extra={"total_startup_duration_ms": int((time.time() - startup_start) * 1000)},
        )
    except Exception as e:
        logger.error(
            "Failed to start product service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    yield

    logger.info("Starting product service shutdown")
    await close_database()
    logger.info("Product service shutdown completed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
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

    routers_info: list[dict[str, Any]] = []

    app.include_router(health_router, tags=["Health"])
    routers_info.append({"router": "health", "prefix": "", "tags": ["Health"]})

    app.include_router(products_router, prefix="/api/v1", tags=["Product Catalog"])
    routers_info.append(
        {"router": "products", "prefix": "/api/v1", "tags": ["Product Catalog"]}
    )

    logger.info(
        "API routes configured",
        extra={"total_routers": len(routers_info), "routers": routers_info},
    )

    return app


app = create_app()
