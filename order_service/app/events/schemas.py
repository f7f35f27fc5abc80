"""
Order lifecycle event schemas.

The published payload is ``{order_id, event_type, snapshot, timestamp}``; the
consumer trusts only this payload, never the surrounding envelope metadata.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from ..schemas.order import OrderItemSnapshot, OrderSnapshot


class OrderEventType(str, Enum):
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_DELETED = "ORDER_DELETED"


class OrderEventData(BaseModel):
    """Data for order lifecycle events"""

    model_config = ConfigDict(extra="forbid")

    order_id: str = Field(min_length=1)
    event_type: OrderEventType
    snapshot: OrderSnapshot
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dictionary for the event envelope"""
        return self.model_dump(mode="json")


__all__ = ["OrderEventData", "OrderEventType", "OrderItemSnapshot", "OrderSnapshot"]
