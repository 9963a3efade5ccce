"""
Retry logic with exponential backoff for requests against the store.

The store serves a challenge page to clients it suspects are automated, so a
single GET is unreliable. Requests are retried a fixed number of times with a
delay that doubles after each failed attempt.
"""

import time
import functools
from typing import Callable, Type, Tuple, Optional


class RetryError(Exception):
    """Raised when all attempts are exhausted."""

    def __init__(self, message: str, attempts: int, last_exception: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_exception = last_exception


def exponential_backoff(
    attempts: int = 3,
    base_delay: float = 0.3,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        attempts: Total number of calls, including the first one
        base_delay: Delay in seconds before the second attempt
        max_delay: Upper bound for a single delay
        exponential_base: Multiplier applied to the delay after each retry
        exceptions: Exceptions that trigger a retry; anything else propagates
        on_retry: Optional callback function(attempt, exception, delay)

    Example:
        @exponential_backoff(attempts=3, base_delay=0.3, exceptions=(Challenge,))
        def fetch_page(url):
            ...
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay

            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts:
                        raise RetryError(
                            f"Failed after {attempts} attempts: {e}",
                            attempts=attempts,
                            last_exception=e,
                        ) from e

                    current_delay = min(delay, max_delay)
                    if on_retry:
                        on_retry(attempt, e, current_delay)

                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator


# Statuses the store and lens hosts return while throttling or restarting.
RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def should_retry_http_status(status_code: int) -> bool:
    """True if a response with this status is worth asking for again."""
    return status_code in RETRYABLE_STATUSES
