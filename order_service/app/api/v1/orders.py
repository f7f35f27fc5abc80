from typing import Optional

from fastapi import APIRouter, Query, status

from ...schemas.order import (
    CreateOrderRequest,
    OrderListResponse,
    OrderOutcome,
    OrderResponse,
)
from ...services.order_service import OrderService
from ..deps import CorrelationIdDep, OrderServiceDep

router = APIRouter(prefix="/orders")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: CreateOrderRequest,
    correlation_id: Optional[str] = CorrelationIdDep,
    order_service: OrderService = OrderServiceDep,
) -> OrderOutcome:
    """Create an order from catalog prices and announce it"""
    return await order_service.create_order(order_data, correlation_id=correlation_id)


@router.get("/", status_code=status.HTTP_200_OK)
async def list_orders(
    customer_id: Optional[str] = Query(
        None, min_length=1, description="Only this customer's orders"
    ),
    order_service: OrderService = OrderServiceDep,
) -> OrderListResponse:
    """List all orders, or all orders of one customer"""
    orders = await order_service.list_orders(customer_id)
    return OrderListResponse(orders=orders, total=len(orders))


@router.get("/{customer_id}/{order_id}", status_code=status.HTTP_200_OK)
async def get_order(
    customer_id: str,
    order_id: str,
    order_service: OrderService = OrderServiceDep,
) -> OrderResponse:
    """Get one order by its composite key"""
    return await order_service.get_order(customer_id, order_id)


@router.delete("/{customer_id}/{order_id}", status_code=status.HTTP_200_OK)
async def delete_order(
    customer_id: str,
    order_id: str,
    correlation_id: Optional[str] = CorrelationIdDep,
    order_service: OrderService = OrderServiceDep,
) -> OrderOutcome:
    """Delete an order and announce its last known state"""
    return await order_service.delete_order(
        customer_id, order_id, correlation_id=correlation_id
    )
