"""
Partition scope for the event store.

Every event row lives in the partition ``scope_key_for(order_id)``. The same
function is used to build the key on write and to authorise the write, so
the two cannot drift apart.
"""

from datetime import datetime

from .exceptions import UnauthorizedScopeError

# Reserved marker every event-store partition key must start with
ORDER_SCOPE_PREFIX = "#order_"


def scope_key_for(order_id: str) -> str:
    """Partition key for all events of ``order_id``."""
    if not order_id:
        raise ValueError("order_id is required to derive a partition key")
    return f"{ORDER_SCOPE_PREFIX}{order_id}"


def is_within_scope(partition_key: str) -> bool:
    """True if ``partition_key`` matches ``ORDER_SCOPE_PREFIX + *``."""
    return partition_key.startswith(ORDER_SCOPE_PREFIX) and len(partition_key) > len(
        ORDER_SCOPE_PREFIX
    )


def event_sort_key(event_type: str, timestamp: datetime) -> str:
    """Deterministic dedup key for one (event type, source timestamp) pair."""
    return f"{event_type}#{timestamp.isoformat()}"


class WriteScope:
    """Capability to write into exactly one order's event partition."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        self.partition_key = scope_key_for(order_id)

    def authorize(self, partition_key: str) -> None:
        if not is_within_scope(partition_key):
            raise UnauthorizedScopeError(
                partition_key, f"key does not match {ORDER_SCOPE_PREFIX}*"
            )
        if partition_key != self.partition_key:
            raise UnauthorizedScopeError(
                partition_key, f"scope is limited to {self.partition_key}"
            )

    def __repr__(self) -> str:
        return f"WriteScope({self.partition_key!r})"
