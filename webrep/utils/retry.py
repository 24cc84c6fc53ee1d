"""Retry utilities with exponential backoff for external API calls."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def retry_with_exponential_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    retry_on_exceptions: tuple[type[Exception], ...] = (Exception,),
    should_retry: Callable[[Exception], bool] | None = None,
    **kwargs: Any,
) -> T:
    """
    Retry an async function with exponential backoff.

    Args:
        func: Async function to retry
        *args: Positional arguments for the function
        max_retries: Maximum number of retry attempts after the first call
        initial_delay: Initial delay in seconds before first retry
        backoff_factor: Multiplier for delay after each retry (default: 2.0)
        retry_on_exceptions: Tuple of exception types to retry on
        should_retry: Optional predicate narrowing which caught exceptions are retried
        **kwargs: Keyword arguments for the function

    Returns:
        Result from successful function execution

    Raises:
        The last exception if all retries fail, or the first non-retryable exception
    """
    delay = initial_delay
    function_name = getattr(func, "__name__", repr(func))

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except retry_on_exceptions as e:
            if should_retry is not None and not should_retry(e):
                logger.debug(
                    "retry_skipped_non_retryable",
                    function=function_name,
                    attempt=attempt + 1,
                    error=str(e),
                )
                raise

            if attempt == max_retries:
                logger.error(
                    "retry_exhausted",
                    function=function_name,
                    attempts=attempt + 1,
                    error=str(e),
                )
                raise

            logger.warning(
                "retry_attempt",
                function=function_name,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay=delay,
                error=str(e),
            )
            await asyncio.sleep(delay)
            delay *= backoff_factor

    raise RuntimeError("Unexpected retry loop exit")
