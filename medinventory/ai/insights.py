"""
InsightService - AI-backed inventory analysis that never fails its caller.

Combines:
- ResponseCache for repeat questions (successful answers only)
- RequestQueue so at most one upstream call is in flight
- CircuitBreaker to stop calling a failing upstream
- call_with_retry for rate-limited responses
- Rule-based fallbacks when any of the above gives up
"""

import asyncio
import copy
from datetime import timedelta
from typing import Any, Callable, Literal, Protocol, TypeVar

from loguru import logger
from pydantic import TypeAdapter

from medinventory.ai import fallbacks, prompts
from medinventory.ai.parsing import parse_response
from medinventory.ai.types import (
    InventoryContext,
    InventoryInsight,
    InventoryItem,
    InventoryTrend,
    MonthlyData,
    MonthlyInsight,
    QuestionAnswer,
    StockPrediction,
)
from medinventory.services.cache import CacheStats, ResponseCache
from medinventory.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from medinventory.services.client import GeminiClient
from medinventory.services.errors import ServiceError
from medinventory.services.request_queue import RequestQueue
from medinventory.services.retry import RetryPolicy, call_with_retry
from medinventory.settings import Settings, global_settings

T = TypeVar("T")

_TRENDS = TypeAdapter(list[InventoryTrend])
_INSIGHTS = TypeAdapter(list[InventoryInsight])
_PREDICTIONS = TypeAdapter(list[StockPrediction])
_MONTHLY = TypeAdapter(MonthlyInsight)
_ANSWER = TypeAdapter(QuestionAnswer)


class TextGenerator(Protocol):
    """Anything that turns a prompt into completion text."""

    async def generate(self, prompt: str) -> str: ...


class InsightService:
    """
    Inventory analysis operations backed by a generative model.

    Every public operation returns a result: on cache miss it asks the
    model through queue → breaker → client, and if that path fails for
    any reason it answers from fallbacks instead.

    Usage:
        service = get_insight_service()

        trends = await service.analyze_trends(items)
        if not service.is_available():
            ...  # show an "offline analysis" hint
    """

    SERVICE_ID = "gemini"

    def __init__(
        self,
        client: TextGenerator | None = None,
        result_ttl: timedelta = timedelta(minutes=30),
        cache: ResponseCache | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        queue: RequestQueue | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self._client = client
        self._result_ttl = result_ttl
        self._cache = cache or ResponseCache()
        self._circuit_breaker = circuit_breaker or CircuitBreaker(self.SERVICE_ID)
        self._queue = queue or RequestQueue()
        self._retry_policy = retry_policy or RetryPolicy()

        # Fetches outlive callers that stop waiting; keep them referenced
        self._in_flight: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "InsightService":
        """Build a service from settings; a missing key means fallback-only."""
        client = None
        if settings.gemini_api_key:
            try:
                client = GeminiClient(
                    api_key=settings.gemini_api_key,
                    model=settings.gemini_model,
                    base_url=settings.gemini_base_url,
                    timeout=settings.gemini_timeout,
                )
                logger.info(
                    f"[InsightService] Initialized with model '{settings.gemini_model}'"
                )
            except ServiceError as e:
                logger.error(f"[InsightService] Initialization error: {e}")
        else:
            logger.warning(
                "[InsightService] GEMINI_API_KEY not set, using fallback analysis only"
            )

        return cls(
            client=client,
            result_ttl=timedelta(minutes=settings.ai_cache_ttl_minutes),
            circuit_breaker=CircuitBreaker(
                cls.SERVICE_ID,
                CircuitBreakerConfig(
                    failure_threshold=settings.circuit_failure_threshold,
                    reset_timeout=timedelta(seconds=settings.circuit_reset_seconds),
                ),
            ),
            queue=RequestQueue(delay=settings.queue_delay_ms / 1000),
        )

    # ── Public operations ────────────────────────────────────────────────────

    async def analyze_trends(self, items: list[InventoryItem]) -> list[InventoryTrend]:
        """Classify each product's stock trend."""
        return await self._run(
            operation="trends",
            cache_params={
                "products": [
                    {"id": i.product_id, "stock": i.current_stock} for i in items
                ]
            },
            build_prompt=lambda: prompts.trends_prompt(items),
            adapter=_TRENDS,
            kind="array",
            fallback=lambda: fallbacks.fallback_trends(items),
        )

    async def generate_insights(
        self, items: list[InventoryItem]
    ) -> list[InventoryInsight]:
        """Produce prioritized warnings and suggestions."""
        return await self._run(
            operation="insights",
            cache_params={
                "products": [
                    {
                        "id": i.product_id,
                        "stock": i.current_stock,
                        "reorder": i.reorder_point,
                    }
                    for i in items
                ]
            },
            build_prompt=lambda: prompts.insights_prompt(items),
            adapter=_INSIGHTS,
            kind="array",
            fallback=lambda: fallbacks.fallback_insights(items),
        )

    async def predict_needs(self, items: list[InventoryItem]) -> list[StockPrediction]:
        """Estimate stock needed over the next 30 days."""
        return await self._run(
            operation="predictions",
            cache_params={
                "products": [
                    {
                        "id": i.product_id,
                        "stock": i.current_stock,
                        "usage": i.average_usage,
                    }
                    for i in items
                ]
            },
            build_prompt=lambda: prompts.predictions_prompt(items),
            adapter=_PREDICTIONS,
            kind="array",
            fallback=lambda: fallbacks.fallback_predictions(items),
        )

    async def summarize_month(self, month_data: MonthlyData) -> MonthlyInsight:
        """Summarize one month of movements."""
        return await self._run(
            operation="monthly_insights",
            cache_params={
                "month": month_data.month,
                "totalItems": month_data.total_items,
                "totalQuantity": month_data.total_quantity,
            },
            build_prompt=lambda: prompts.monthly_prompt(
                month_data, fallbacks.reject_rate(month_data)
            ),
            adapter=_MONTHLY,
            kind="object",
            fallback=lambda: fallbacks.fallback_monthly_insight(month_data),
        )

    async def answer_question(
        self, question: str, context: InventoryContext
    ) -> QuestionAnswer:
        """Answer a free-text question about the inventory snapshot."""
        return await self._run(
            operation="qa",
            cache_params={
                "query": question,
                "totalItems": context.total_items,
                "totalQuantity": context.total_quantity,
            },
            build_prompt=lambda: prompts.question_prompt(question, context),
            adapter=_ANSWER,
            kind="object",
            fallback=lambda: fallbacks.fallback_answer(question, context),
        )

    # ── Introspection ────────────────────────────────────────────────────────

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("[InsightService] Cache cleared")

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def circuit_state(self) -> str:
        return self._circuit_breaker.get_state()

    def is_configured(self) -> bool:
        return self._client is not None

    def is_available(self) -> bool:
        """True when a client exists and the circuit is not open."""
        return (
            self._client is not None
            and self._circuit_breaker.state != CircuitState.OPEN
        )

    def get_health_status(self) -> dict[str, Any]:
        """Get health status for dashboards."""
        return {
            "available": self.is_available(),
            "configured": self.is_configured(),
            "circuit": self._circuit_breaker.get_status(),
            "cache": self._cache.stats().to_dict(),
            "queue": self._queue.get_stats().to_dict(),
        }

    async def close(self) -> None:
        """Let in-flight fetches finish, then release the upstream client."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()
        logger.debug("[InsightService] closed")

    # ── Internals ────────────────────────────────────────────────────────────

    async def _run(
        self,
        operation: str,
        cache_params: dict[str, Any],
        build_prompt: Callable[[], str],
        adapter: TypeAdapter[T],
        kind: Literal["array", "object"],
        fallback: Callable[[], T],
    ) -> T:
        cache_key = self._cache.generate_key(operation, cache_params)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.info(f"[InsightService] Returning cached {operation}")
            return copy.deepcopy(cached)

        if self._client is None:
            logger.info(f"[InsightService] Using fallback {operation} (not configured)")
            return fallback()

        try:
            task = asyncio.create_task(
                self._fetch(operation, cache_key, build_prompt(), adapter, kind)
            )
            self._in_flight.add(task)
            task.add_done_callback(self._fetch_done)

            # Cancelling the caller leaves the fetch running; its result is still cached
            return await asyncio.shield(task)
        except Exception as e:
            logger.error(f"[InsightService] Error generating {operation}: {e}")
            logger.warning(f"[InsightService] Using fallback {operation}")
            return fallback()

    async def _fetch(
        self,
        operation: str,
        cache_key: str,
        prompt: str,
        adapter: TypeAdapter[T],
        kind: Literal["array", "object"],
    ) -> T:
        """Ask the model through retry, queue and breaker, then parse and cache."""
        text = await call_with_retry(
            lambda: self._queue.enqueue(
                lambda: self._circuit_breaker.execute(
                    lambda: self._client.generate(prompt)
                )
            ),
            policy=self._retry_policy,
            label="InsightService",
        )
        result = parse_response(text, adapter, kind)

        self._cache.set(cache_key, copy.deepcopy(result), self._result_ttl)
        logger.info(f"[InsightService] {operation} generated successfully")
        return result

    def _fetch_done(self, task: asyncio.Task[Any]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug(f"[InsightService] Fetch finished with error: {exc}")


# Global service instance
_global_service: InsightService | None = None


def get_insight_service() -> InsightService:
    """Get the global insight service, building it on first use."""
    global _global_service
    if _global_service is None:
        _global_service = InsightService.from_settings(global_settings)
    return _global_service


async def reset_insight_service() -> None:
    """Close and drop the global insight service."""
    global _global_service
    if _global_service:
        await _global_service.close()
        _global_service = None
