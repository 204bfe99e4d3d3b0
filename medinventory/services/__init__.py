"""
Service layer infrastructure - resilience patterns for external API calls.

Provides:
- ResponseCache: TTL cache with lazy eviction and canonical keys
- CircuitBreaker: Fails fast while the upstream is unhealthy
- RequestQueue: Serializes upstream calls with a fixed pause
- call_with_retry: Backoff retry for rate-limited calls
- RateLimiter: Sliding-window limiter keyed by client
- GeminiClient: HTTP client for the Gemini API
"""

from medinventory.services.errors import (
    ServiceError,
    CircuitOpenError,
    MalformedResponseError,
    RateLimitedError,
    RequestTimeoutError,
    MissingCredentialsError,
    UpstreamHTTPError,
)
from medinventory.services.cache import CacheEntry, CacheStats, ResponseCache
from medinventory.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from medinventory.services.request_queue import RequestQueue
from medinventory.services.retry import RetryPolicy, call_with_retry, is_rate_limit_error
from medinventory.services.rate_limiter import (
    RATE_LIMIT_CONFIGS,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
    check_rate_limit,
    client_id,
)
from medinventory.services.client import GeminiClient, KeyValidation, validate_api_key

__all__ = [
    # Errors
    "ServiceError",
    "CircuitOpenError",
    "MalformedResponseError",
    "RateLimitedError",
    "RequestTimeoutError",
    "MissingCredentialsError",
    "UpstreamHTTPError",
    # Cache
    "ResponseCache",
    "CacheEntry",
    "CacheStats",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    # Queue / Retry
    "RequestQueue",
    "RetryPolicy",
    "call_with_retry",
    "is_rate_limit_error",
    # Rate limiting
    "RATE_LIMIT_CONFIGS",
    "RateLimitConfig",
    "RateLimiter",
    "RateLimitResult",
    "check_rate_limit",
    "client_id",
    # Client
    "GeminiClient",
    "KeyValidation",
    "validate_api_key",
]
