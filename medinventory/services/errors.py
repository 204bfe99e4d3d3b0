"""
Errors raised on the way to the generative model.

InsightService turns every one of them into a fallback answer; only
direct users of the services layer see them.
"""


class ServiceError(Exception):
    """Root of all upstream failures. service_id names the upstream."""

    def __init__(self, message: str, service_id: str | None = None):
        super().__init__(message)
        self.service_id = service_id


class UpstreamHTTPError(ServiceError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, service_id: str, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body[:200]
        super().__init__(f"HTTP {status_code}: {self.body}", service_id=service_id)


class RateLimitedError(UpstreamHTTPError):
    """HTTP 429. The only failure the retry loop backs off on."""

    def __init__(self, service_id: str, retry_after: float | None = None):
        self.retry_after = retry_after
        detail = "rate limit exceeded"
        if retry_after:
            detail += f", retry after {retry_after:g}s"
        super().__init__(service_id, 429, detail)


class CircuitOpenError(ServiceError):
    """Call rejected without reaching the upstream."""

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            f"Circuit breaker is OPEN for '{service_id}', "
            f"next probe allowed in {reset_after_seconds:.1f}s",
            service_id=service_id,
        )


class RequestTimeoutError(ServiceError):
    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"No response from '{service_id}' within {timeout:g}s",
            service_id=service_id,
        )


class MalformedResponseError(ServiceError):
    """Reply arrived but held no usable JSON of the expected shape."""


class MissingCredentialsError(ServiceError):
    """No API key configured for the upstream."""
