"""Retry policies with fixed or exponential backoff for transient errors."""

import asyncio
import functools
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Maps a 0-indexed failed attempt number to a delay in seconds
BackoffFunction = Callable[[int], float]

TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def calculate_exponential_backoff_delay(
    initial_delay: float,
    attempt: int,
    exponential_base: int,
    max_delay: float,
    jitter: bool = True,
) -> float:
    """
    Calculate delay with exponential backoff and optional jitter.

    Args:
        initial_delay: Initial delay in seconds
        attempt: Current attempt number (0-indexed)
        exponential_base: Base for exponential calculation (e.g., 2)
        max_delay: Maximum delay in seconds
        jitter: Add 0-50% random jitter to the delay

    Returns:
        Delay in seconds
    """
    delay = min(initial_delay * (exponential_base**attempt), max_delay)
    if not jitter:
        return delay
    return delay + random.uniform(0, delay * 0.5)


def fixed_backoff(delay: float) -> BackoffFunction:
    """Backoff that waits the same number of seconds before every retry."""

    def _backoff(attempt: int) -> float:
        return delay

    return _backoff


def exponential_backoff(
    initial_delay: float = 1.0,
    exponential_base: int = 2,
    max_delay: float = 60.0,
    jitter: bool = True,
) -> BackoffFunction:
    """Backoff that grows by ``exponential_base`` on every retry."""

    def _backoff(attempt: int) -> float:
        return calculate_exponential_backoff_delay(
            initial_delay=initial_delay,
            attempt=attempt,
            exponential_base=exponential_base,
            max_delay=max_delay,
            jitter=jitter,
        )

    return _backoff


def is_transient_error(error: BaseException) -> bool:
    """
    Determine if an error is transient (should retry) or permanent (should not retry).

    Domain exceptions opt in by setting a truthy ``is_transient`` attribute.
    Checks the ``__cause__`` chain as well.

    Args:
        error: Exception to check

    Returns:
        True if error is transient and should be retried, False otherwise
    """
    marker = getattr(error, "is_transient", None)
    if marker is not None:
        return bool(marker)

    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in TRANSIENT_STATUS_CODES

    # Timeouts, connection resets, DNS failures, ...
    if isinstance(error, httpx.TransportError):
        return True

    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True

    if isinstance(error, OSError):
        return True

    if error.__cause__ is not None:
        return is_transient_error(error.__cause__)

    # Default: treat unknown errors as permanent to avoid infinite retries
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """
    Explicit retry configuration handed to the call that needs it.

    Attributes:
        max_attempts: Total number of attempts, including the first one
        backoff: Delay before the next attempt, given the failed attempt index
        retry_on: Predicate deciding whether an error may be retried
    """

    max_attempts: int = 4
    backoff: BackoffFunction = field(default_factory=lambda: fixed_backoff(2.0))
    retry_on: Callable[[BaseException], bool] = is_transient_error

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        """Policy that makes a single attempt."""
        return cls(max_attempts=1, backoff=fixed_backoff(0.0))


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: RetryPolicy,
    operation: str = "",
    **kwargs: Any,
) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying transient failures per ``policy``.

    Permanent errors propagate immediately. When the attempt budget is spent,
    the last error propagates unchanged.

    Args:
        func: Coroutine function to call
        policy: Retry policy to apply
        operation: Name used in log messages, defaults to the function name

    Returns:
        Whatever ``func`` returns
    """
    name = operation or getattr(func, "__name__", repr(func))

    for attempt in range(policy.max_attempts):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not policy.retry_on(e):
                logger.error(f"❌ Permanent error in {name}: {e}. Not retrying.")
                raise

            if attempt + 1 >= policy.max_attempts:
                logger.error(
                    f"❌ Max attempts ({policy.max_attempts}) exceeded for {name}. "
                    f"Last error: {e}"
                )
                raise

            delay = policy.backoff(attempt)
            logger.warning(
                f"⚠️  Transient error in {name}: {e}. "
                f"Retry {attempt + 1}/{policy.max_attempts - 1} in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)

    # max_attempts >= 1, so the loop always returns or raises
    raise RuntimeError(f"{name} did not run")


def retry_with_policy(
    policy: RetryPolicy,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator form of :func:`call_with_retry`.

    Example:
        @retry_with_policy(RetryPolicy(max_attempts=3))
        async def fetch_data():
            return await api_call()
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await call_with_retry(
                func, *args, policy=policy, operation=func.__name__, **kwargs
            )

        return wrapper

    return decorator
