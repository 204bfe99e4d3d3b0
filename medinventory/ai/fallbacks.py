"""
Rule-based answers used when the AI path is unavailable.

Everything here is computed from the input alone: no network, no cache,
and no exceptions for well-formed input.
"""

import math

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

TREND_CONFIDENCE = 0.5
MONTHLY_CONFIDENCE = 0.5
ANSWER_CONFIDENCE = 0.4

HIGH_STOCK_RATIO = 0.8
PREDICTION_BUFFER = 1.2  # 20% safety margin
PREDICTION_TIMEFRAME = "30 days"

REJECT_RATE_HIGH = 5.0
REJECT_RATE_LOW = 2.0
DESTINATION_IMBALANCE = 30.0

TREND_RECOMMENDATIONS = {
    "decreasing": "Consider reordering soon",
    "increasing": "Stock levels are healthy",
    "stable": "Monitor stock levels",
}


def _ratio(part: float, whole: float) -> float:
    """part / whole, treating an empty whole as 0% (or unbounded for part > 0)."""
    if whole:
        return part / whole
    return math.inf if part > 0 else 0.0


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def fallback_trends(items: list[InventoryItem]) -> list[InventoryTrend]:
    trends = []
    for item in items:
        if item.current_stock < item.reorder_point:
            trend = "decreasing"
        elif _ratio(item.current_stock, item.max_stock_level) > HIGH_STOCK_RATIO:
            trend = "increasing"
        else:
            trend = "stable"

        trends.append(
            InventoryTrend(
                product=item.product_name,
                trend=trend,
                confidence=TREND_CONFIDENCE,
                recommendation=TREND_RECOMMENDATIONS[trend],
            )
        )
    return trends


def fallback_insights(items: list[InventoryItem]) -> list[InventoryInsight]:
    insights = []
    for item in items:
        if item.current_stock < item.reorder_point:
            insights.append(
                InventoryInsight(
                    type="warning",
                    message=(
                        f"{item.product_name} is below reorder point "
                        f"({item.current_stock}/{item.reorder_point})"
                    ),
                    priority="high",
                )
            )
        elif item.current_stock > item.max_stock_level:
            insights.append(
                InventoryInsight(
                    type="info",
                    message=(
                        f"{item.product_name} is overstocked "
                        f"({item.current_stock}/{item.max_stock_level})"
                    ),
                    priority="medium",
                )
            )

    if not insights:
        insights.append(
            InventoryInsight(
                type="success",
                message="All inventory levels are within normal ranges",
                priority="low",
            )
        )
    return insights


def fallback_predictions(items: list[InventoryItem]) -> list[StockPrediction]:
    predictions = []
    for item in items:
        # Without usage history, assume half the reorder point per month
        average_usage = item.average_usage or item.reorder_point * 0.5
        predictions.append(
            StockPrediction(
                product=item.product_name,
                current_stock=item.current_stock,
                predicted_need=_round_half_up(average_usage * PREDICTION_BUFFER),
                timeframe=PREDICTION_TIMEFRAME,
                confidence=0.6 if item.average_usage else 0.3,
            )
        )
    return predictions


def reject_rate(month_data: MonthlyData) -> float:
    """Rejected units as a percentage of total units."""
    if not month_data.total_quantity:
        return 0.0
    return month_data.reject_count / month_data.total_quantity * 100


def fallback_monthly_insight(month_data: MonthlyData) -> MonthlyInsight:
    rate = reject_rate(month_data)
    total = month_data.total_quantity
    mais_pct = month_data.destinations.mais / total * 100 if total else 0.0
    fozan_pct = month_data.destinations.fozan / total * 100 if total else 0.0

    key_findings = [
        f"Processed {month_data.total_items} inventory items with {total} total units",
        f"Reject rate was {rate:.2f}%",
        f"Distribution: {mais_pct:.1f}% to MAIS, {fozan_pct:.1f}% to FOZAN",
    ]
    if month_data.top_products:
        top = month_data.top_products[0]
        key_findings.append(f"Top product: {top.name} with {top.quantity} units")

    trends = []
    if rate > REJECT_RATE_HIGH:
        trends.append("Higher than expected reject rate observed")
    elif rate < REJECT_RATE_LOW:
        trends.append("Low reject rate indicates good quality control")

    recommendations = []
    if rate > REJECT_RATE_HIGH:
        recommendations.append(
            "Review quality control processes to reduce reject rate"
        )
    if abs(mais_pct - fozan_pct) > DESTINATION_IMBALANCE:
        recommendations.append(
            "Consider balancing distribution between MAIS and FOZAN"
        )
    recommendations.append(
        "Continue monitoring inventory levels for optimization opportunities"
    )

    return MonthlyInsight(
        summary=(
            f"In {month_data.month}, the system processed {month_data.total_items} "
            f"items totaling {total} units with a {rate:.2f}% reject rate."
        ),
        key_findings=key_findings,
        trends=trends or ["Inventory patterns appear stable"],
        recommendations=recommendations,
        confidence=MONTHLY_CONFIDENCE,
    )


def fallback_answer(question: str, context: InventoryContext) -> QuestionAnswer:
    query = question.lower()
    sources: list[str] = []

    if "total" in query or "how many" in query:
        answer = (
            f"Based on the current inventory data, there are {context.total_items} "
            f"items with a total quantity of {context.total_quantity} units."
        )
        sources.append("Total inventory count")

    elif "low stock" in query or "reorder" in query:
        if context.low_stock_items:
            names = ", ".join(i.item_name for i in context.low_stock_items)
            answer = (
                f"There are {len(context.low_stock_items)} items with low stock: {names}."
            )
            sources.append("Low stock items list")
        else:
            answer = "All items appear to have adequate stock levels at this time."
            sources.append("Stock level analysis")

    elif "recent" in query or "activity" in query:
        if context.recent_activity:
            entries = ", ".join(
                f"{a.item_name} ({a.quantity} units)"
                for a in context.recent_activity[:3]
            )
            answer = f"Recent activity includes: {entries}."
            sources.append("Recent activity log")
        else:
            answer = "No recent activity data is available."

    elif "category" in query or "categories" in query:
        if context.top_categories:
            entries = ", ".join(
                f"{c.category} ({c.count} items)" for c in context.top_categories
            )
            answer = f"Top categories: {entries}."
            sources.append("Category breakdown")
        else:
            answer = "Category information is not available at this time."

    else:
        answer = (
            "I apologize, but I am currently unable to process your question. "
            "However, I can provide information about total inventory, low stock "
            "items, recent activity, and categories. Please try rephrasing your question."
        )

    return QuestionAnswer(
        question=question,
        answer=answer,
        confidence=ANSWER_CONFIDENCE,
        sources=sources or None,
    )
