"""
RequestQueue - Serializes calls to a rate-limited upstream.

Work items run one at a time in enqueue order, with a fixed pause
between them to smooth bursts. When the queue is empty there is no
drain task at all; the next enqueue starts one.
"""

import asyncio
from collections import deque
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class RequestQueue:
    """
    FIFO dispatcher running at most one unit of work at a time.

    A caller that stops awaiting its result does not stop the work:
    it still runs in turn and its outcome is discarded.

    Usage:
        queue = RequestQueue(delay=0.1)

        text = await queue.enqueue(lambda: client.generate(prompt))
    """

    def __init__(self, delay: float = 0.1, debug: bool = False):
        self._delay = delay
        self._pending: deque[tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = (
            deque()
        )
        self._drain_task: asyncio.Task[None] | None = None
        self._debug = debug
        self._stats = RequestQueueStats()

    async def enqueue(self, work: Callable[[], Awaitable[T]]) -> T:
        """
        Append work to the queue and wait for its result.

        Args:
            work: Zero-argument async callable to execute in turn

        Returns:
            Whatever work returned; its exception is re-raised here
        """
        future = asyncio.get_running_loop().create_future()
        self._pending.append((work, future))
        self._stats.enqueued += 1
        self._log(f"ENQUEUE: {len(self._pending)} pending")

        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._drain())

        return await future

    async def _drain(self) -> None:
        """Process pending work until the queue is empty."""
        while self._pending:
            work, future = self._pending.popleft()
            try:
                result = await work()
            except Exception as e:
                self._stats.failed += 1
                if not future.done():
                    future.set_exception(e)
            else:
                self._stats.completed += 1
                if not future.done():
                    future.set_result(result)

            # Pause between requests to stay under upstream rate limits
            await asyncio.sleep(self._delay)

        self._log("IDLE: queue drained")

    def get_pending_count(self) -> int:
        """Get number of tasks waiting to run."""
        return len(self._pending)

    def is_processing(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def get_stats(self) -> "RequestQueueStats":
        """Get queue statistics."""
        self._stats.pending = len(self._pending)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[RequestQueue] {message}")


class RequestQueueStats:
    """Statistics for the request queue."""

    def __init__(self):
        self.enqueued: int = 0
        self.completed: int = 0
        self.failed: int = 0
        self.pending: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enqueued": self.enqueued,
            "completed": self.completed,
            "failed": self.failed,
            "pending": self.pending,
        }
