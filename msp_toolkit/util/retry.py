"""
Retry logic with exponential backoff for resilient operations.
"""

import time
from collections.abc import Callable, Iterator
from functools import wraps
from typing import TypeVar

from msp_toolkit.exceptions import RetryableError

T = TypeVar("T")

# HTTP statuses worth retrying: rate limiting and transient server errors
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def backoff_delays(
    max_attempts: int,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 30.0,
) -> Iterator[float]:
    """
    Yield the wait before each retry (one fewer than max_attempts).

    Example:
        >>> list(backoff_delays(5, initial_delay=10.0, max_delay=30.0))
        [10.0, 20.0, 30.0, 30.0]
    """
    delay = initial_delay
    for _ in range(max_attempts - 1):
        yield min(delay, max_delay)
        delay *= backoff_factor


def retry_with_backoff(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 60.0,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    retry_if: Callable[[Exception], bool] | None = None,
    on_retry: Callable[[Exception, int, int], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Decorator to retry a function with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        initial_delay: Initial delay in seconds (default: 1.0)
        backoff_factor: Multiplier for delay after each failure (default: 2.0)
        max_delay: Maximum delay between retries (default: 60.0)
        retryable_exceptions: Tuple of exception types to retry (default: all)
        retry_if: Optional predicate; errors it rejects propagate immediately
        on_retry: Optional callback called on each retry: (error, attempt, max_attempts)
        sleep: Function used to wait between attempts (default: time.sleep)

    Returns:
        Decorated function with retry logic

    Raises:
        RetryableError: When every attempt failed with a retryable error

    Example:
        @retry_with_backoff(max_attempts=3, initial_delay=2.0)
        def call_api():
            response = requests.get("https://api.example.com")
            response.raise_for_status()
            return response.json()
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delays = backoff_delays(max_attempts, initial_delay, backoff_factor, max_delay)
            last_exception = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise
                    last_exception = e

                    if attempt == max_attempts:
                        break

                    if on_retry is not None:
                        on_retry(e, attempt, max_attempts)

                    sleep(next(delays))

            # All retries exhausted
            assert last_exception is not None  # Always set in the except block
            raise RetryableError(last_exception, max_attempts, max_attempts) from last_exception

        return wrapper

    return decorator


def is_retryable_status(status_code: int | None) -> bool:
    """
    Determine if an HTTP status code should be retried.

    Args:
        status_code: HTTP status, or None when no response was received

    Returns:
        True for 429 and transient 5xx responses
    """
    return status_code in RETRYABLE_STATUS_CODES


def is_retryable_error(error: Exception) -> bool:
    """
    Determine if an error should be retried.

    Args:
        error: The exception to check

    Returns:
        True if error should be retried

    Retryable errors include:
    - Network errors
    - Timeout errors
    - Rate limit errors (429)
    - Server errors (500-599)
    """
    error_msg = str(error).lower()

    # Network/connection errors
    if any(
        keyword in error_msg
        for keyword in [
            "connection",
            "timeout",
            "timed out",
            "network",
            "unreachable",
        ]
    ):
        return True

    # Rate limiting
    if "rate limit" in error_msg or "429" in error_msg:
        return True

    # Server errors
    if any(
        keyword in error_msg
        for keyword in ["500", "502", "503", "504", "server error", "internal error"]
    ):
        return True

    return False


class RetryStrategy:
    """
    Configurable retry strategy for different scenarios.
    """

    # Preset strategies
    AGGRESSIVE = {
        "max_attempts": 6,
        "initial_delay": 0.5,
        "backoff_factor": 2.0,
        "max_delay": 10.0,
    }

    MODERATE = {
        "max_attempts": 3,
        "initial_delay": 1.0,
        "backoff_factor": 2.0,
        "max_delay": 30.0,
    }

    ITGLUE = {
        "max_attempts": 5,
        "initial_delay": 1.0,
        "backoff_factor": 2.0,
        "max_delay": 30.0,
    }

    @staticmethod
    def apply(strategy_name: str = "MODERATE") -> dict:
        """
        Get retry parameters for a named strategy.

        Args:
            strategy_name: Name of the strategy (AGGRESSIVE, MODERATE, ITGLUE)

        Returns:
            Dictionary of retry parameters

        Example:
            params = RetryStrategy.apply("ITGLUE")
            @retry_with_backoff(**params)
            def call_api():
                ...
        """
        strategy = getattr(RetryStrategy, strategy_name.upper(), RetryStrategy.MODERATE)
        return strategy.copy()
