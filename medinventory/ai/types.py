"""
Inventory insight types using Pydantic models.

Attributes are snake_case; each model also accepts and emits the
camelCase field names used in the JSON the LLM is asked to return.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Inputs ───────────────────────────────────────────────────────────────────


class InventoryItem(CamelModel):
    """Stock levels for one product."""

    product_id: str
    product_name: str
    current_stock: int
    min_stock_level: int
    max_stock_level: int
    reorder_point: int
    average_usage: float | None = None
    last_restock_date: datetime | None = None


class ProductQuantity(CamelModel):
    name: str
    quantity: int


class DestinationSplit(CamelModel):
    """Units shipped per destination."""

    mais: int = Field(default=0, alias="MAIS")
    fozan: int = Field(default=0, alias="FOZAN")


class MonthlyData(CamelModel):
    """Aggregated movements for one month (YYYY-MM)."""

    month: str
    total_items: int
    total_quantity: int
    reject_count: int
    top_products: list[ProductQuantity] = Field(default_factory=list)
    destinations: DestinationSplit = Field(default_factory=DestinationSplit)


class ActivityEntry(CamelModel):
    item_name: str
    quantity: int
    destination: str
    date: str


class LowStockEntry(CamelModel):
    item_name: str
    current_stock: int
    reorder_point: int


class CategoryCount(CamelModel):
    category: str
    count: int


class InventoryContext(CamelModel):
    """Dashboard snapshot used to answer free-text questions."""

    total_items: int
    total_quantity: int
    recent_activity: list[ActivityEntry] = Field(default_factory=list)
    low_stock_items: list[LowStockEntry] | None = None
    top_categories: list[CategoryCount] | None = None


# ── Outputs ──────────────────────────────────────────────────────────────────


class InventoryTrend(CamelModel):
    product: str
    trend: Literal["increasing", "decreasing", "stable"]
    confidence: float
    recommendation: str


class InventoryInsight(CamelModel):
    type: Literal["warning", "info", "success"]
    message: str
    priority: Literal["high", "medium", "low"]


class StockPrediction(CamelModel):
    product: str
    current_stock: float
    predicted_need: float
    timeframe: str
    confidence: float


class MonthlyInsight(CamelModel):
    summary: str
    key_findings: list[str]
    trends: list[str]
    recommendations: list[str]
    confidence: float


class QuestionAnswer(CamelModel):
    question: str
    answer: str
    confidence: float
    sources: list[str] | None = None
