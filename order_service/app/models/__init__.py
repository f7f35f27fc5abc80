"""
Order Service Models

Order Store models inherit from OrderServiceBase; Event Store models from
OrderEventsBase, since the two stores may live in different databases.
"""

from .base import OrderEventsBase, OrderServiceBase
from .order import Order, Status
from .order_event import OrderEvent

__all__ = [
    "OrderServiceBase",
    "OrderEventsBase",
    "Order",
    "OrderEvent",
    "Status",
]
