"""
Error handling middleware for Order Service.
Maps the service error taxonomy onto standardized JSON error responses.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...core.exceptions import (
    ConflictError,
    NotFoundError,
    ProductNotFoundError,
    ServiceError,
    TransientError,
    UnauthorizedScopeError,
    ValidationFailedError,
)
from ...utils.logging import setup_order_logging

logger = setup_order_logging("order_service_error_handler")

RETRY_AFTER_SECONDS = 1

# Checked in order: ConditionalCheckFailedError is both a Conflict and a
# NotFound and must answer 409.
STATUS_BY_ERROR = (
    (ProductNotFoundError, 404),
    (ConflictError, 409),
    (NotFoundError, 404),
    (ValidationFailedError, 400),
    (UnauthorizedScopeError, 403),
    (TransientError, 503),
)


def status_for(exc: ServiceError) -> int:
    for error_class, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return status_code
    return 500


class OrderServiceErrorHandler:
    """
    Centralized error handling for Order Service.

    Every error body has the shape ``{"error": {type, message, ...}}``.
    """

    @staticmethod
    def setup_error_handlers(app: FastAPI) -> None:
        """
        Setup all error handlers for the FastAPI application.
        """

        @app.exception_handler(ServiceError)
        async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
            """Handle the service error taxonomy."""
            status_code = status_for(exc)
            headers = (
                {"Retry-After": str(RETRY_AFTER_SECONDS)}
                if isinstance(exc, TransientError)
                else None
            )
            return OrderServiceErrorHandler._create_error_response(
                request=request,
                status_code=status_code,
                error_type=exc.error_type,
                message=exc.message,
                details=exc.details,
                headers=headers,
            )

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(
            request: Request, exc: StarletteHTTPException
        ) -> JSONResponse:
            """Handle HTTP exceptions from Starlette/FastAPI."""
            return OrderServiceErrorHandler._create_error_response(
                request=request,
                status_code=exc.status_code,
                error_type="http_error",
                message=str(exc.detail),
                details={"path": request.url.path, "method": request.method},
            )

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(
            request: Request, exc: RequestValidationError
        ) -> JSONResponse:
            """Handle request body/query validation errors."""
            error_details = [
                {
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
                for error in exc.errors()
            ]
            return OrderServiceErrorHandler._create_error_response(
                request=request,
                status_code=422,
                error_type="validation_error",
                message="Request validation failed",
                details={"validation_errors": error_details},
            )

        @app.exception_handler(Exception)
        async def unhandled_exception_handler(
            request: Request, exc: Exception
        ) -> JSONResponse:
            logger.error(
                "Unhandled exception occurred",
                extra={
                    "correlation_id": request.headers.get("X-Correlation-ID"),
                    "path": request.url.path,
                    "method": request.method,
                    "exception_type": type(exc).__name__,
                    "event_type": "unhandled_exception",
                },
                exc_info=exc,
            )
            return OrderServiceErrorHandler._create_error_response(
                request=request,
                status_code=500,
                error_type="internal_server_error",
                message="An internal server error occurred",
                details={"exception_type": type(exc).__name__},
            )

    @staticmethod
    def _create_error_response(
        request: Request,
        status_code: int,
        error_type: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> JSONResponse:
        """
        Create a standardized error response.

        Args:
            request: The FastAPI request object
            status_code: HTTP status code
            error_type: Type of error for categorization
            message: Human-readable error message
            details: Additional error details
            headers: Extra response headers (``Retry-After`` for transient errors)

        Returns:
            JSONResponse with standardized error format
        """
        correlation_id = request.headers.get("X-Correlation-ID", "unknown")

        error_response: Dict[str, Any] = {
            "error": {
                "type": error_type,
                "message": message,
                "correlation_id": correlation_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "path": request.url.path,
                "method": request.method,
            }
        }

        if details:
            error_response["error"]["details"] = details

        if status_code < 500:
            logger.warning(
                f"Client error: {error_type}",
                extra={
                    "correlation_id": correlation_id,
                    "status_code": status_code,
                    "error_type": error_type,
                    "path": request.url.path,
                    "method": request.method,
                    "event_type": "client_error",
                },
            )

        return JSONResponse(
            status_code=status_code,
            content=jsonable_encoder(error_response),
            headers=headers,
        )


def setup_order_error_handling(app: FastAPI) -> None:
    """
    Convenience function to setup error handling for Order Service.

    Args:
        app: FastAPI application instance
    """
    OrderServiceErrorHandler.setup_error_handlers(app)

    logger.info(
        "Order Service error handling configured",
        extra={"event_type": "error_handler_setup"},
    )
