"""Bounded retry with exponential backoff.

retry() runs an async operation up to ``max_attempts`` times. After each
retryable failure it sleeps, then multiplies the delay by
``backoff_factor`` up to ``max_delay``. Exactly one of two things happens:
the operation's result is returned, or the last error is raised.

The same engine serves confirmation polling and mapping lookups; each call
site passes its own RetryPolicy.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterator, TypeVar

from roomchain.errors import ErrorKind, classify

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


def always_retry(error: BaseException) -> bool:
    """Retry on every error, permanent ones included."""
    return True


def is_retryable(error: BaseException) -> bool:
    """Retry transient and unclassified errors, never permanent ones."""
    return classify(error) in (ErrorKind.TRANSIENT, ErrorKind.UNKNOWN)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait between tries.

    Delays are in seconds.
    """

    max_attempts: int = 5
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    should_retry: Callable[[BaseException], bool] = field(
        default=is_retryable, compare=False,
    )

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays must be non-negative")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be at least 1")

    def delays(self) -> Iterator[float]:
        """Yield the wait before each retry, in order."""
        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            yield delay
            delay = min(delay * self.backoff_factor, self.max_delay)


DEFAULT_POLICY = RetryPolicy()

# Separate objects so polling and lookups can be tuned independently.
POLL_POLICY = RetryPolicy()
QUERY_POLICY = RetryPolicy()


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or the policy says stop.

    Raises the error from the final attempt, or the first error the
    policy's predicate refuses to retry.
    """
    delay = policy.initial_delay
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.max_attempts or not policy.should_retry(exc):
                raise
            logger.warning(
                f"Operation failed (attempt {attempt}/{policy.max_attempts}). "
                f"Retrying in {delay:g}s: {exc!r}"
            )
        await sleep(delay)
        delay = min(delay * policy.backoff_factor, policy.max_delay)
        attempt += 1


def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
    sleep: Sleep = asyncio.sleep,
) -> Callable[[], Awaitable[T]]:
    """Wrap ``operation`` so every call goes through retry()."""

    async def run() -> T:
        return await retry(operation, policy, sleep)

    return run
