import asyncio

import pytest

from medinventory.ai import insights


class FakeClock:
    """Manually advanced stand-in for time.monotonic / time.time."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def isolate_global_service():
    """Drop the process-wide InsightService around each test."""
    asyncio.run(insights.reset_insight_service())
    yield
    asyncio.run(insights.reset_insight_service())
