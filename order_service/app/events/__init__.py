"""
Events module for the Order Service.

Producers:
    - OrderEventProducer: publishes ORDER_CREATED / ORDER_DELETED

Consumers:
    - OrderEventsHandler: appends notifications to the event store
    - OrderEventConsumer: manages the topic subscription
"""

from .consumers import (
    OrderEventConsumer,
    OrderEventsHandler,
    get_order_event_consumer,
    shutdown_order_event_consumer,
)
from .producers import OrderEventProducer

__all__ = [
    "OrderEventProducer",
    "OrderEventsHandler",
    "OrderEventConsumer",
    "get_order_event_consumer",
    "shutdown_order_event_consumer",
]
