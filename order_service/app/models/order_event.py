from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ..core.scope import ORDER_SCOPE_PREFIX
from .base import OrderEventsBase, utcnow

# Store-level guard: rows outside the reserved order partition space are
# rejected by the database, whatever code issued the write.
_SCOPE_CHECK = (
    f"substr(pk, 1, {len(ORDER_SCOPE_PREFIX)}) = '{ORDER_SCOPE_PREFIX}' "
    f"AND length(pk) > {len(ORDER_SCOPE_PREFIX)}"
)


class OrderEvent(OrderEventsBase):
    """Append-only order lifecycle event.

    ``pk`` is ``scope_key_for(order_id)`` and ``sk`` is the dedup key derived
    from the event type and source timestamp, so a redelivered notification
    maps onto the row it already produced.
    """

    __tablename__ = "order_events"
    __table_args__ = (CheckConstraint(_SCOPE_CHECK, name="ck_order_events_pk_scope"),)

    pk: Mapped[str] = mapped_column(String(128), primary_key=True)
    sk: Mapped[str] = mapped_column(String(128), primary_key=True)

    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_id: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    message_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
