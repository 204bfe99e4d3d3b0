"""
In-memory sliding-window rate limiter keyed by client.

Per-process only; several app instances each keep their own counts.
"""

import math
import time
from collections import deque
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from loguru import logger


@dataclass(frozen=True)
class RateLimitConfig:
    """Limit for one class of endpoint."""

    window: timedelta
    max_requests: int
    message: str = "Too many requests. Please try again later."


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    remaining: int
    reset_at: float
    retry_after: int


RATE_LIMIT_CONFIGS: dict[str, RateLimitConfig] = {
    # Authentication
    "login": RateLimitConfig(
        window=timedelta(minutes=15),
        max_requests=5,
        message="Too many login attempts. Please try again in 15 minutes.",
    ),
    "register": RateLimitConfig(
        window=timedelta(hours=1),
        max_requests=3,
        message="Too many registration attempts. Please try again later.",
    ),
    "password_reset": RateLimitConfig(
        window=timedelta(hours=1),
        max_requests=3,
        message="Too many password reset requests. Please try again later.",
    ),
    # API
    "api": RateLimitConfig(
        window=timedelta(minutes=1),
        max_requests=100,
        message="Too many requests. Please slow down.",
    ),
    "api_strict": RateLimitConfig(
        window=timedelta(minutes=1),
        max_requests=30,
        message="Rate limit exceeded. Please wait before trying again.",
    ),
    "export": RateLimitConfig(
        window=timedelta(minutes=1),
        max_requests=5,
        message="Too many export requests. Please wait a minute.",
    ),
    "search": RateLimitConfig(
        window=timedelta(minutes=1),
        max_requests=60,
        message="Too many search requests. Please slow down.",
    ),
    "ai": RateLimitConfig(
        window=timedelta(minutes=1),
        max_requests=10,
        message="Too many AI requests. Please wait before trying again.",
    ),
    "email": RateLimitConfig(
        window=timedelta(hours=1),
        max_requests=10,
        message="Too many email requests. Please try again later.",
    ),
}


class RateLimiter:
    """
    Sliding-window limiter: at most max_requests per window per key.

    Usage:
        limiter = RateLimiter()
        result = limiter.check("ai:ip:10.0.0.1", RATE_LIMIT_CONFIGS["ai"])
        if not result.allowed:
            ...  # respond 429 with Retry-After: result.retry_after
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._requests: dict[str, deque[float]] = {}
        self._clock = clock

    def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        """Record a request for key if it fits in the window."""
        now = self._clock()
        window = config.window.total_seconds()
        timestamps = self._window(key, now, window)

        if len(timestamps) >= config.max_requests:
            reset_at = timestamps[0] + window
            logger.warning(f"[RateLimiter] Rate limit exceeded for '{key}'")
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=reset_at,
                retry_after=max(0, math.ceil(reset_at - now)),
            )

        timestamps.append(now)
        reset_at = timestamps[0] + window
        return RateLimitResult(
            allowed=True,
            remaining=config.max_requests - len(timestamps),
            reset_at=reset_at,
            retry_after=0,
        )

    def get_remaining(self, key: str, config: RateLimitConfig) -> int:
        """Requests still available to key in the current window."""
        timestamps = self._window(key, self._clock(), config.window.total_seconds())
        return max(0, config.max_requests - len(timestamps))

    def reset(self, key: str) -> None:
        """Forget all requests recorded for key."""
        self._requests.pop(key, None)

    def clear_all(self) -> None:
        """Forget every key."""
        self._requests.clear()

    def _window(self, key: str, now: float, window: float) -> deque[float]:
        timestamps = self._requests.setdefault(key, deque())
        while timestamps and timestamps[0] <= now - window:
            timestamps.popleft()
        return timestamps


def client_id(
    ip: str | None,
    session_token: str | None = None,
    per_user: bool = False,
) -> str:
    """Identify the caller by session when asked to, otherwise by IP.

    ip may be a raw X-Forwarded-For value; its first hop is used.
    """
    if per_user and session_token:
        return f"user:{session_token}"

    first_hop = ip.split(",")[0].strip() if ip else ""
    return f"ip:{first_hop or 'unknown'}"


# Global limiter instance
_global_limiter = RateLimiter()


def check_rate_limit(
    config_name: str,
    client: str,
    custom_key: str | None = None,
) -> RateLimitResult:
    """
    Check a named preset against the process-wide limiter.

    Raises:
        KeyError: If config_name is not a known preset
    """
    if config_name not in RATE_LIMIT_CONFIGS:
        raise KeyError(f"Rate limit config not found: {config_name}")

    key = custom_key or f"{config_name}:{client}"
    return _global_limiter.check(key, RATE_LIMIT_CONFIGS[config_name])


def clear_all_rate_limits() -> None:
    """Reset the process-wide limiter."""
    _global_limiter.clear_all()
