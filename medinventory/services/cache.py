"""
ResponseCache - In-memory TTL cache for upstream AI responses.

Features:
- Per-entry TTL with a process-wide default
- Lazy eviction: expired entries are dropped when read
- Sweep of expired entries whenever stats are collected
- Deterministic keys from an operation name plus sorted-key JSON params

Access is single-threaded cooperative (asyncio), so no locking is used.
"""

import hashlib
import json
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")

MAX_KEY_LENGTH = 200


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    value: T
    stored_at: float
    ttl: timedelta

    def is_expired(self, now: float) -> bool:
        """Check if entry is past its TTL."""
        return now - self.stored_at > self.ttl.total_seconds()


@dataclass
class CacheStats:
    """Cache statistics."""

    size: int = 0
    keys: list[str] = field(default_factory=list)
    hits: int = 0
    misses: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "size": self.size,
            "keys": list(self.keys),
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


class ResponseCache:
    """
    TTL cache keyed by canonical operation keys.

    Usage:
        cache = ResponseCache()

        key = cache.generate_key("trends", {"products": [...]})
        cached = cache.get(key)
        if cached is not None:
            return cached

        data = await fetch_data()
        cache.set(key, data, ttl=timedelta(minutes=30))
    """

    def __init__(
        self,
        default_ttl: timedelta = timedelta(minutes=5),
        clock: Callable[[], float] = time.monotonic,
        debug: bool = False,
    ):
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self._debug = debug
        self._hits = 0
        self._misses = 0
        self._expirations = 0

    @staticmethod
    def generate_key(operation: str, params: dict[str, Any]) -> str:
        """Generate a cache key from an operation name and its params.

        Params are serialized with sorted keys so that insertion order
        never changes the key.
        """
        canonical = json.dumps(
            params, sort_keys=True, separators=(",", ":"), default=str
        )
        full_key = f"{operation}:{canonical}"

        # Hash long keys
        if len(full_key) > MAX_KEY_LENGTH:
            hash_val = hashlib.md5(full_key.encode()).hexdigest()[:16]
            return f"{operation}:{hash_val}"

        return full_key

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        """
        Store value, replacing any existing entry for the key.

        Args:
            key: Cache key
            value: Data to cache
            ttl: Time to live (uses default if not specified or zero)
        """
        ttl = ttl or self._default_ttl
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl=ttl)
        self._log(f"SET: {key[:50]}... (TTL: {ttl.total_seconds()}s)")

    def get(self, key: str) -> Any | None:
        """Return the live value for key, or None if missing or expired."""
        entry = self._live_entry(key)
        if entry is None:
            self._misses += 1
            return None

        self._hits += 1
        self._log(f"HIT: {key[:50]}...")
        return entry.value

    def has(self, key: str) -> bool:
        """Check for a live entry without returning it."""
        return self._live_entry(key) is not None

    def clear(self) -> None:
        """Clear all cache entries."""
        count = len(self._entries)
        self._entries.clear()
        self._log(f"CLEAR: {count} entries removed")

    def stats(self) -> CacheStats:
        """Sweep expired entries, then report what is still live."""
        now = self._clock()
        expired_keys = [k for k, v in self._entries.items() if v.is_expired(now)]
        for key in expired_keys:
            del self._entries[key]
        self._expirations += len(expired_keys)

        if expired_keys:
            self._log(f"CLEANUP: {len(expired_keys)} expired entries removed")

        return CacheStats(
            size=len(self._entries),
            keys=list(self._entries.keys()),
            hits=self._hits,
            misses=self._misses,
            expirations=self._expirations,
        )

    def _live_entry(self, key: str) -> CacheEntry[Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            self._log(f"MISS: {key[:50]}...")
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._expirations += 1
            self._log(f"EXPIRED: {key[:50]}...")
            return None

        return entry

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[ResponseCache] {message}")
