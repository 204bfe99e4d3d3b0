"""Tests for the circuit breaker state machine."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from medinventory.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from medinventory.services.errors import CircuitOpenError


def _run(coro):
    return asyncio.run(coro)


def _breaker(clock, threshold=5, reset_seconds=60) -> CircuitBreaker:
    config = CircuitBreakerConfig(
        failure_threshold=threshold, reset_timeout=timedelta(seconds=reset_seconds)
    )
    return CircuitBreaker("test-service", config=config, clock=clock)


async def _fail():
    raise ValueError("upstream broke")


def _fail_times(cb: CircuitBreaker, n: int) -> None:
    for _ in range(n):
        with pytest.raises(ValueError):
            _run(cb.execute(_fail))


# ---------------------------------------------------------------------------
# CircuitState
# ---------------------------------------------------------------------------


class TestCircuitState:
    def test_values(self):
        assert CircuitState.CLOSED.value == "CLOSED"
        assert CircuitState.OPEN.value == "OPEN"
        assert CircuitState.HALF_OPEN.value == "HALF_OPEN"

    def test_is_str(self):
        assert CircuitState.OPEN == "OPEN"


# ---------------------------------------------------------------------------
# CLOSED behaviour
# ---------------------------------------------------------------------------


class TestClosed:
    def test_starts_closed(self, clock):
        cb = _breaker(clock)
        assert cb.get_state() == "CLOSED"
        assert cb.failure_count == 0

    def test_success_passes_result_through(self, clock):
        cb = _breaker(clock)
        work = AsyncMock(return_value="ok")
        assert _run(cb.execute(work)) == "ok"
        work.assert_awaited_once()

    def test_failure_is_reraised_unchanged(self, clock):
        cb = _breaker(clock)
        with pytest.raises(ValueError, match="upstream broke"):
            _run(cb.execute(_fail))
        assert cb.failure_count == 1

    def test_stays_closed_below_threshold(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 4)
        assert cb.get_state() == "CLOSED"
        assert cb.failure_count == 4

    def test_opens_at_threshold(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 5)
        assert cb.get_state() == "OPEN"

    def test_success_resets_failure_count(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 4)
        _run(cb.execute(AsyncMock(return_value=1)))
        assert cb.failure_count == 0
        _fail_times(cb, 4)
        assert cb.get_state() == "CLOSED"

    def test_custom_threshold(self, clock):
        cb = _breaker(clock, threshold=2)
        _fail_times(cb, 2)
        assert cb.get_state() == "OPEN"


# ---------------------------------------------------------------------------
# OPEN behaviour
# ---------------------------------------------------------------------------


class TestOpen:
    def test_rejects_without_invoking_work(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 5)
        clock.advance(59)

        work = AsyncMock(return_value="never")
        with pytest.raises(CircuitOpenError) as exc_info:
            _run(cb.execute(work))

        work.assert_not_awaited()
        assert exc_info.value.service_id == "test-service"
        assert "OPEN" in str(exc_info.value)

    def test_rejection_does_not_extend_timeout(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 5)
        clock.advance(30)
        with pytest.raises(CircuitOpenError):
            _run(cb.execute(AsyncMock()))
        clock.advance(31)

        work = AsyncMock(return_value="probe")
        assert _run(cb.execute(work)) == "probe"

    def test_time_until_reset(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 5)
        clock.advance(20)
        assert cb.get_time_until_reset() == pytest.approx(40.0)

    def test_time_until_reset_none_when_closed(self, clock):
        assert _breaker(clock).get_time_until_reset() is None

    def test_get_state_does_not_transition(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 5)
        clock.advance(120)
        assert cb.get_state() == "OPEN"


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


class TestRecovery:
    def test_probe_allowed_after_reset_timeout(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 5)
        clock.advance(61)

        work = AsyncMock(return_value="back")
        assert _run(cb.execute(work)) == "back"
        work.assert_awaited_once()
        assert cb.get_state() == "CLOSED"
        assert cb.failure_count == 0

    def test_failed_probe_reopens(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 5)
        clock.advance(61)

        with pytest.raises(ValueError):
            _run(cb.execute(_fail))
        assert cb.get_state() == "OPEN"

        clock.advance(30)
        with pytest.raises(CircuitOpenError):
            _run(cb.execute(AsyncMock()))

    def test_half_open_during_probe(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 5)
        clock.advance(61)
        seen = []

        async def probe():
            seen.append(cb.get_state())
            return True

        _run(cb.execute(probe))
        assert seen == ["HALF_OPEN"]

    def test_manual_reset(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 5)
        cb.reset()
        assert cb.get_state() == "CLOSED"
        assert cb.failure_count == 0


class TestStatus:
    def test_get_status(self, clock):
        cb = _breaker(clock)
        _fail_times(cb, 2)
        status = cb.get_status()
        assert status["service_id"] == "test-service"
        assert status["state"] == "CLOSED"
        assert status["failure_count"] == 2
        assert status["failure_threshold"] == 5
        assert status["time_until_reset"] is None
