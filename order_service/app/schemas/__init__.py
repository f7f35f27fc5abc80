"""
Order schemas package
"""

from .order import (
    CreateOrderRequest,
    OrderEventRecord,
    OrderItemCreate,
    OrderItemResponse,
    OrderListResponse,
    OrderOutcome,
    OrderResponse,
)

__all__ = [
    "CreateOrderRequest",
    "OrderEventRecord",
    "OrderItemCreate",
    "OrderItemResponse",
    "OrderListResponse",
    "OrderOutcome",
    "OrderResponse",
]
