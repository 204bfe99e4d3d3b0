"""
CircuitBreaker - Stops calling a failing upstream after repeated failures.

CLOSED passes calls through and counts consecutive failures. Reaching
failure_threshold moves to OPEN, where calls are refused outright. The
first call arriving more than reset_timeout after the last failure is
let through as a HALF_OPEN probe: success closes the circuit, failure
reopens it.
"""

import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from medinventory.services.errors import CircuitOpenError

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"  # refusing calls
    HALF_OPEN = "HALF_OPEN"  # one probe in flight


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    reset_timeout: timedelta = timedelta(seconds=60)


class CircuitBreaker:
    """
    Circuit breaker for a single upstream service.

    Apart from reset(), only a successful call clears failure_count.
    The OPEN → HALF_OPEN move depends on elapsed time alone.

    Usage:
        cb = CircuitBreaker("gemini")

        try:
            result = await cb.execute(lambda: client.generate(prompt))
        except CircuitOpenError:
            ...  # upstream skipped
    """

    def __init__(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service_id = service_id
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_at: float | None = None

    @property
    def state(self) -> CircuitState:
        """Current state, without applying time-based transitions."""
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def get_state(self) -> str:
        """Read-only state name: 'CLOSED', 'OPEN' or 'HALF_OPEN'."""
        return self._state.value

    async def execute(self, work: Callable[[], Awaitable[T]]) -> T:
        """
        Run work through the breaker.

        Raises:
            CircuitOpenError: If the circuit is open and the reset timeout
                has not elapsed. work is not invoked.
            Exception: Whatever work raised, after the failure is recorded.
        """
        if self._state == CircuitState.OPEN:
            if self._reset_timeout_elapsed():
                self._transition_to(CircuitState.HALF_OPEN)
            else:
                raise CircuitOpenError(
                    self.service_id, self.get_time_until_reset() or 0.0
                )

        try:
            result = await work()
        except Exception:
            self.record_failure()
            raise

        self.record_success()
        return result

    def record_success(self) -> None:
        """A success always clears the failure streak."""
        self._failure_count = 0
        if self._state != CircuitState.CLOSED:
            self._transition_to(CircuitState.CLOSED)
            logger.info(f"Circuit breaker '{self.service_id}' CLOSED (recovered)")

    def record_failure(self) -> None:
        """Count a failure and open the circuit if it tips over."""
        self._failure_count += 1
        self._last_failure_at = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            self._open()
        elif (
            self._state == CircuitState.CLOSED
            and self._failure_count >= self.config.failure_threshold
        ):
            self._open()

    def reset(self) -> None:
        """Force CLOSED and forget past failures."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_at = None
        logger.info(f"Circuit breaker '{self.service_id}' reset by caller")

    def get_time_until_reset(self) -> float | None:
        """Get seconds until a call would be let through as a probe."""
        if self._state != CircuitState.OPEN or self._last_failure_at is None:
            return None

        elapsed = self._clock() - self._last_failure_at
        remaining = self.config.reset_timeout.total_seconds() - elapsed
        return max(0.0, remaining)

    def get_status(self) -> dict[str, Any]:
        """Snapshot for health endpoints."""
        return {
            "service_id": self.service_id,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.config.failure_threshold,
            "time_until_reset": self.get_time_until_reset(),
        }

    def _reset_timeout_elapsed(self) -> bool:
        if self._last_failure_at is None:
            return True
        elapsed = self._clock() - self._last_failure_at
        return elapsed > self.config.reset_timeout.total_seconds()

    def _open(self) -> None:
        self._transition_to(CircuitState.OPEN)
        logger.warning(
            f"Circuit breaker '{self.service_id}' OPENED after {self._failure_count} failures"
        )

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        logger.debug(
            f"Circuit breaker '{self.service_id}' transitioned: "
            f"{old_state.value} → {new_state.value}"
        )
