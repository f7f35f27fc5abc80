"""
Error taxonomy for the catalog and order pipeline.

Repositories raise these instead of HTTP errors so the same failures can be
surfaced to HTTP callers, event consumers and background jobs alike.
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base class for all expected service failures."""

    error_type = "service_error"
    retryable = False

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(ServiceError):
    """Referenced entity does not exist."""

    error_type = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} with ID {entity_id} not found",
            details={"entity": entity, "id": str(entity_id)},
        )


class ValidationFailedError(ServiceError):
    """Malformed or inconsistent request."""

    error_type = "validation_failed"


class ConflictError(ServiceError):
    """A conditional write precondition failed."""

    error_type = "conflict"


class ConditionalCheckFailedError(ConflictError, NotFoundError):
    """Conditional update/delete against a key that does not exist."""

    error_type = "conditional_check_failed"

    def __init__(self, entity: str, entity_id: Any):
        NotFoundError.__init__(self, entity, entity_id)


class TransientError(ServiceError):
    """Timeout or remote store failure, safe to retry."""

    error_type = "transient"
    retryable = True
