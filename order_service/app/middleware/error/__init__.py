"""Maps the service error taxonomy onto HTTP responses."""

from .error_handler import STATUS_BY_ERROR, OrderServiceErrorHandler, setup_order_error_handling

__all__ = ["STATUS_BY_ERROR", "OrderServiceErrorHandler", "setup_order_error_handling"]
