"""
Retry with exponential backoff for rate-limited upstream calls.

Only rate-limit failures are retried; every other error is re-raised
on the first occurrence.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from medinventory.services.errors import RateLimitedError

T = TypeVar("T")

# Message fragments that mark an upstream error as rate limiting.
# Matching on message text breaks if the upstream rewords its errors.
RATE_LIMIT_MARKERS: tuple[str, ...] = ("429", "rate limit")


@dataclass
class RetryPolicy:
    """Backoff schedule: one retry per delay, in seconds."""

    delays: tuple[float, ...] = (1.0, 2.0, 4.0, 8.0)

    @property
    def max_retries(self) -> int:
        return len(self.delays)


def is_rate_limit_error(exc: BaseException) -> bool:
    """Classify an upstream error as rate limiting."""
    if isinstance(exc, RateLimitedError):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


async def call_with_retry(
    work: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    label: str = "upstream",
) -> T:
    """
    Await work(), retrying rate-limit failures on the policy's schedule.

    Args:
        work: Zero-argument async callable, re-invoked on each attempt
        policy: Backoff schedule (defaults to 1s, 2s, 4s, 8s)
        label: Name used in log lines

    Raises:
        Exception: The last error once retries are exhausted, or the
            first non rate-limit error
    """
    policy = policy or RetryPolicy()
    retry_count = 0

    while True:
        try:
            return await work()
        except Exception as e:
            if not is_rate_limit_error(e) or retry_count >= policy.max_retries:
                raise

            delay = policy.delays[retry_count]
            retry_count += 1
            logger.warning(
                f"[{label}] Rate limit hit, retry {retry_count}/{policy.max_retries} "
                f"in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
