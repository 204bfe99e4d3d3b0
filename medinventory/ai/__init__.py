"""
AI inventory insights module.
"""

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
from medinventory.ai.insights import (
    InsightService,
    get_insight_service,
    reset_insight_service,
)

__all__ = [
    "InventoryContext",
    "InventoryInsight",
    "InventoryItem",
    "InventoryTrend",
    "MonthlyData",
    "MonthlyInsight",
    "QuestionAnswer",
    "StockPrediction",
    "InsightService",
    "get_insight_service",
    "reset_insight_service",
]
