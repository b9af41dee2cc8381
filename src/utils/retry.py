"""Timeout and exponential-backoff helpers for remote store calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from src.core.exceptions import MinuteParkException, OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: float = 15.0,
    message: str = "The operation took too long. Check your connection.",
) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise OperationTimeoutError(message) from exc


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
) -> T:
    """
    Run ``operation`` up to ``max_retries`` times, sleeping
    ``initial_delay * 2**attempt`` between attempts.

    Timeouts and application errors (not found, permission, validation)
    are raised immediately.
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            return await operation()
        except (OperationTimeoutError, MinuteParkException):
            raise
        except Exception as exc:
            last_error = exc
            if attempt < max_retries - 1:
                delay = initial_delay * (2**attempt)
                logger.warning(
                    "Retry attempt %d/%d after %.2fs: %s", attempt + 1, max_retries, delay, exc
                )
                await asyncio.sleep(delay)

    if last_error is None:
        raise ValueError("max_retries must be at least 1")
    raise last_error


async def execute_with_timeout_and_retry(
    operation: Callable[[], Awaitable[T]],
    timeout_seconds: float = 15.0,
    max_retries: int = 3,
    initial_delay: float = 1.0,
) -> T:
    return await retry_with_backoff(
        lambda: with_timeout(operation(), timeout_seconds),
        max_retries=max_retries,
        initial_delay=initial_delay,
    )
