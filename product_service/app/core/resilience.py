"""
Timeout and retry helpers for remote store calls.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from .exceptions import TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_with_timeout(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """Await a store call with a bounded timeout.

    Timeouts and connection-level failures surface as ``TransientError``;
    integrity and programming errors propagate unchanged.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise TransientError(
            f"{operation} timed out after {timeout}s",
            details={"operation": operation, "timeout_seconds": timeout},
        ) from e
    except (OperationalError, InterfaceError, PoolTimeoutError) as e:
        raise TransientError(
            f"{operation} failed: {e}",
            details={"operation": operation},
        ) from e


async def retry_transient(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    max_retries: int = 3,
    retry_delay: float = 0.1,
) -> T:
    """Run ``operation`` retrying only ``TransientError`` with exponential backoff"""
    for attempt in range(max_retries):
        try:
            return await operation()
        except TransientError as e:
            if attempt >= max_retries - 1:
                logger.error(
                    f"{operation_name} failed after {max_retries} attempts",
                    extra={
                        "operation": operation_name,
                        "attempts": max_retries,
                        "error": e.message,
                    },
                )
                raise

            delay = retry_delay * (2**attempt)
            logger.warning(
                f"{operation_name} attempt {attempt + 1} failed: {e.message}. "
                f"Retrying in {delay} seconds...",
                extra={"operation": operation_name, "attempt": attempt + 1},
            )
            await asyncio.sleep(delay)

    raise TransientError(f"{operation_name} was not attempted")
