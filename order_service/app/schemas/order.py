from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.order import Order


class OrderItemSnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product_id: str
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)


class OrderSnapshot(BaseModel):
    """Full state of an order at the moment an event was produced"""

    model_config = ConfigDict(extra="forbid")

    customer_id: str
    order_id: str
    status: str
    total: Decimal
    items: List[OrderItemSnapshot]
    created_at: datetime


class OrderItemCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class CreateOrderRequest(BaseModel):
    """Order creation request; prices are never taken from the client"""

    model_config = ConfigDict(extra="forbid")

    customer_id: str = Field(..., min_length=1, max_length=255)
    items: List[OrderItemCreate] = Field(..., min_length=1)

    @field_validator("customer_id")
    @classmethod
    def validate_customer_id(cls, v):
        if not v.strip():
            raise ValueError("customer_id cannot be empty or whitespace only")
        return v.strip()


class OrderItemResponse(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal


class OrderResponse(BaseModel):
    customer_id: str
    order_id: str
    status: str
    total: Decimal
    items: List[OrderItemResponse]
    created_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            customer_id=order.pk,
            order_id=order.sk,
            status=order.status,
            total=order.total,
            items=[OrderItemResponse(**item) for item in order.items],
            created_at=order.created_at,
        )

    def to_snapshot(self, status: str | None = None) -> OrderSnapshot:
        return OrderSnapshot(
            customer_id=self.customer_id,
            order_id=self.order_id,
            status=status or self.status,
            total=self.total,
            items=[OrderItemSnapshot(**item.model_dump()) for item in self.items],
            created_at=self.created_at,
        )


class OrderOutcome(BaseModel):
    """Two-phase result of a create/delete: the store commit and the publish"""

    order: OrderResponse
    committed: bool
    published: bool


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total: int


class OrderEventRecord(BaseModel):
    """Row about to be appended to the event store"""

    model_config = ConfigDict(frozen=True)

    pk: str
    sk: str
    order_id: str
    customer_id: str
    event_type: str
    payload: dict
    message_id: str | None = None
    created_at: datetime
