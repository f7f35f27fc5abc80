import time
from typing import Any, Dict

from fastapi import APIRouter
from sqlalchemy import text

from ...core.database import (
    OrderServiceDatabaseManager,
    get_event_store,
    get_order_store,
)
from ...core.events import event_consumer_status, health_check_events
from ...core.setting import get_settings

router = APIRouter()


async def _store_status(store: OrderServiceDatabaseManager) -> str:
    try:
        async with store.async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        return f"error: {e}"
    return "healthy"


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health of both stores, the event topic and the event consumer.

    An unavailable topic only degrades the service: orders are still
    committed and reported with ``published=false``.
    """
    checks = {
        "order_store": await _store_status(get_order_store()),
        "event_store": await _store_status(get_event_store()),
        "event_topic": "healthy" if await health_check_events() else "unavailable",
        "event_consumer": event_consumer_status(),
    }

    if checks["order_store"] != "healthy":
        status = "unhealthy"
    elif any(value not in ("healthy", "disabled") for value in checks.values()):
        status = "degraded"
    else:
        status = "healthy"

    return {
        "service": "order-service",
        "status": status,
        "checks": checks,
        "version": get_settings().APP_VERSION,
        "timestamp": time.time(),
    }
