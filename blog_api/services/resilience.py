"""
Retry helpers for calls to object storage and other external services.

Transient provider failures (network hiccups, throttling, 5xx) are retried
with capped exponential backoff; the last error is re-raised once the attempt
budget is spent.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, min_wait: float, max_wait: float) -> float:
    """Delay before the retry that follows `attempt` (1-based): min_wait * 2^(attempt-1), capped."""
    return min(min_wait * (2 ** (attempt - 1)), max_wait)


def with_sync_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 5.0,
    retry_exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> Callable:
    """
    Decorator for sync functions with exponential backoff retry.

    Args:
        max_attempts: Total number of attempts, including the first call
        min_wait: Wait before the first retry (seconds)
        max_wait: Maximum wait between retries (seconds)
        retry_exceptions: Tuple of exception types to retry on
        sleep: Sleep function (overridable in tests)

    Usage:
        @with_sync_retry(max_attempts=3, min_wait=1.0, max_wait=5.0)
        def put(key: str, body: bytes) -> None:
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception: Exception | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retry_exceptions as e:
                    last_exception = e
                    if attempt == max_attempts:
                        logger.error(
                            f"{func.__name__} failed after {max_attempts} attempts: {e}",
                            extra={"event": "retry_exhausted", "attempt": attempt},
                        )
                        raise

                    wait_time = backoff_delay(attempt, min_wait, max_wait)
                    logger.warning(
                        f"{func.__name__} attempt {attempt} failed: {e}. Retrying in {wait_time:.1f}s...",
                        extra={"event": "retry_scheduled", "attempt": attempt},
                    )
                    sleep(wait_time)

            if last_exception:
                raise last_exception
            raise RuntimeError(f"{func.__name__} failed without exception")

        return wrapper

    return decorator
