"""Async retry with exponential backoff."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sydneyqt.logging import get_logger

T = TypeVar("T")

__all__ = [
    "retry_async",
]

logger = get_logger(__name__)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int,
    delay_seconds: float,
    retry_if: Callable[[Exception], bool],
) -> T:
    """Call ``func`` until it succeeds or a non-retryable error occurs.

    The delay doubles after each failed attempt. When the last attempt
    fails the exception propagates.

    Args:
        func: Zero-argument coroutine factory
        max_retries: Retries after the first attempt
        delay_seconds: Delay before the first retry
        retry_if: Decides whether an exception is retryable
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not retry_if(e):
                raise
            if attempt >= max_retries:
                logger.error(
                    "all_attempts_failed",
                    total_attempts=attempt + 1,
                    error=str(e),
                )
                raise
            delay = delay_seconds * (2**attempt)
            attempt += 1
            logger.warning(
                "attempt_failed_retrying",
                attempt=attempt,
                max_retries=max_retries,
                error=str(e),
                delay_seconds=delay,
            )
            await asyncio.sleep(delay)
