"""
Order pipeline errors.

The base taxonomy is shared with the catalog so that catalog failures
(timeouts in particular) keep their meaning inside the order handler.
"""

from typing import Iterable

from product_service.app.core.exceptions import (
    ConditionalCheckFailedError,
    ConflictError,
    NotFoundError,
    ServiceError,
    TransientError,
    ValidationFailedError,
)


class ProductNotFoundError(ServiceError):
    """An order references product IDs the catalog cannot resolve."""

    error_type = "product_not_found"

    def __init__(self, missing_ids: Iterable[str]):
        self.missing_ids = sorted(missing_ids)
        super().__init__(
            f"Products not found: {', '.join(self.missing_ids)}",
            details={"missing_product_ids": self.missing_ids},
        )


class UnauthorizedScopeError(ServiceError):
    """An event write targeted a partition outside the permitted scope.

    Never retried: repeating the write would repeat the same invalid scope.
    """

    error_type = "unauthorized_scope"

    def __init__(self, partition_key: str, reason: str):
        self.partition_key = partition_key
        super().__init__(
            f"Write to partition {partition_key!r} rejected: {reason}",
            details={"partition_key": partition_key, "reason": reason},
        )


__all__ = [
    "ConditionalCheckFailedError",
    "ConflictError",
    "NotFoundError",
    "ProductNotFoundError",
    "ServiceError",
    "TransientError",
    "UnauthorizedScopeError",
    "ValidationFailedError",
]
