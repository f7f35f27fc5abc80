"""
Product Service Health Check Utilities
======================================
"""

import time
from typing import Any, Awaitable, Callable, Dict

from sqlalchemy import text

from ..core.database import get_database_manager

HealthCheck = Callable[[], Awaitable[Dict[str, Any]]]


class ProductServiceHealthChecker:
    """Runs named async health checks and aggregates their status"""

    def __init__(self, service_name: str = "product_service") -> None:
        self.service_name = service_name
        self.checks: Dict[str, HealthCheck] = {}

    def add_check(self, name: str, check_func: HealthCheck) -> None:
        self.checks[name] = check_func

    async def run_checks(self) -> Dict[str, Any]:
        results: Dict[str, Dict[str, Any]] = {}

        for name, check_func in self.checks.items():
            started = time.time()
            try:
                result = await check_func()
            except Exception as e:
                result = {"status": "error", "error": str(e)}
            result["duration_ms"] = round((time.time() - started) * 1000, 2)
            results[name] = result

        healthy = all(r.get("status") == "healthy" for r in results.values())
        return {
            "service": self.service_name,
            "status": "healthy" if healthy else "unhealthy",
            "checks": results,
            "timestamp": time.time(),
        }


async def catalog_store_check() -> Dict[str, Any]:
    async with get_database_manager().async_session_maker() as session:
        await session.execute(text("SELECT 1"))
    return {"status": "healthy", "component": "catalog_store"}


async def create_product_service_health_check(
    service_name: str = "product_service", version: str = "1.0.0"
) -> Dict[str, Any]:
    """Create basic Product Service health check"""
    health_checker = ProductServiceHealthChecker(service_name)
    health_checker.add_check("catalog_store", catalog_store_check)
    report = await health_checker.run_checks()
    report["version"] = version
    return report
