from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import DECIMAL, JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import OrderServiceBase, utcnow


class Status(Enum):
    PENDING = "PENDING"
    CREATED = "CREATED"
    DELETED = "DELETED"


class Order(OrderServiceBase):
    """Order record keyed by (customer scope, order id)."""

    __tablename__ = "orders"

    pk: Mapped[str] = mapped_column(String(255), primary_key=True)
    sk: Mapped[str] = mapped_column(String(64), primary_key=True)

    status: Mapped[str] = mapped_column(
        String(20), default=Status.PENDING.value, nullable=False
    )
    # Sum of unit_price * quantity, frozen at creation time
    total: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), nullable=False)
    # [{"product_id": str, "quantity": int, "unit_price": str}, ...]
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
