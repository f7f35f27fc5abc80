from typing import Any, Dict

from fastapi import APIRouter

from ...core.setting import get_settings
from ...utils.service_health import create_product_service_health_check

router = APIRouter()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint for the product service."""
    return await create_product_service_health_check(
        "product-service", get_settings().APP_VERSION
    )
