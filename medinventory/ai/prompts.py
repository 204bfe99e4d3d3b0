"""
Prompt templates for the inventory insight operations.

Each prompt ends by asking for a strict JSON shape; the response parser
pulls the first JSON value out of whatever text comes back.
"""

from medinventory.ai.types import InventoryContext, InventoryItem, MonthlyData

TRENDS_TEMPLATE = """Analyze the following medical inventory data and identify trends:

{items}

For each product, determine if the stock trend is increasing, decreasing, or stable.
Provide a confidence score (0-1) and a brief recommendation.

Return ONLY a valid JSON array with this exact structure:
[
  {{
    "product": "product name",
    "trend": "increasing|decreasing|stable",
    "confidence": 0.85,
    "recommendation": "brief recommendation"
  }}
]"""

INSIGHTS_TEMPLATE = """Analyze this medical inventory data and generate actionable insights:

{items}

Identify:
- Critical low stock warnings (high priority)
- Overstocking issues (medium priority)
- Optimization opportunities (low priority)

Return ONLY a valid JSON array with this exact structure:
[
  {{
    "type": "warning|info|success",
    "message": "clear actionable message",
    "priority": "high|medium|low"
  }}
]"""

PREDICTIONS_TEMPLATE = """Predict future stock needs for these medical products:

{items}

For each product, predict the stock needed for the next 30 days.
Provide confidence scores (0-1) based on available data.

Return ONLY a valid JSON array with this exact structure:
[
  {{
    "product": "product name",
    "currentStock": 100,
    "predictedNeed": 150,
    "timeframe": "30 days",
    "confidence": 0.75
  }}
]"""

MONTHLY_TEMPLATE = """Analyze this monthly medical inventory data and generate comprehensive insights:

Month: {month}
Total Items: {total_items}
Total Quantity: {total_quantity}
Reject Count: {reject_count}
Reject Rate: {reject_rate:.2f}%

Top Products:
{top_products}

Distribution by Destination:
- MAIS: {mais} units
- FOZAN: {fozan} units

Provide:
1. A brief summary of the month's performance
2. 3-5 key findings about inventory patterns
3. 2-4 notable trends observed
4. 3-5 actionable recommendations for improvement

Return ONLY a valid JSON object with this exact structure:
{{
  "summary": "brief overview of the month",
  "keyFindings": ["finding 1", "finding 2", "finding 3"],
  "trends": ["trend 1", "trend 2"],
  "recommendations": ["recommendation 1", "recommendation 2", "recommendation 3"],
  "confidence": 0.85
}}"""

QUESTION_TEMPLATE = """You are an AI assistant for a medical inventory management system. Answer the user's question based on the provided inventory context.

Inventory Context:
- Total Items: {total_items}
- Total Quantity: {total_quantity}

Recent Activity:
{recent_activity}
{low_stock}{categories}
User Question: {question}

Provide a clear, concise answer based on the context. If the context doesn't contain enough information to answer the question, say so politely.

Return ONLY a valid JSON object with this exact structure:
{{
  "question": "{escaped_question}",
  "answer": "your detailed answer here",
  "confidence": 0.85,
  "sources": ["context data point 1", "context data point 2"]
}}"""


# ── Data formatters ──────────────────────────────────────────────────────────


def _fmt_item(
    item: InventoryItem,
    include_max: bool = True,
    include_usage: bool = True,
    usage_suffix: str = "",
) -> str:
    lines = [
        f"Product: {item.product_name}",
        f"Current Stock: {item.current_stock}",
        f"Min Level: {item.min_stock_level}",
    ]
    if include_max:
        lines.append(f"Max Level: {item.max_stock_level}")
    lines.append(f"Reorder Point: {item.reorder_point}")
    if include_usage and item.average_usage:
        lines.append(f"Average Usage: {item.average_usage:g}{usage_suffix}")
    return "\n".join(lines)


def _fmt_items(items: list[InventoryItem], **kwargs) -> str:
    return "\n\n".join(_fmt_item(item, **kwargs) for item in items)


def _fmt_section(title: str, lines: list[str]) -> str:
    if not lines:
        return ""
    return f"\n{title}:\n" + "\n".join(lines) + "\n"


# ── Prompt builders ──────────────────────────────────────────────────────────


def trends_prompt(items: list[InventoryItem]) -> str:
    return TRENDS_TEMPLATE.format(items=_fmt_items(items))


def insights_prompt(items: list[InventoryItem]) -> str:
    return INSIGHTS_TEMPLATE.format(items=_fmt_items(items, include_usage=False))


def predictions_prompt(items: list[InventoryItem]) -> str:
    return PREDICTIONS_TEMPLATE.format(
        items=_fmt_items(items, include_max=False, usage_suffix=" units/month")
    )


def monthly_prompt(month_data: MonthlyData, reject_rate: float) -> str:
    top_products = "\n".join(
        f"- {p.name}: {p.quantity} units" for p in month_data.top_products
    )
    return MONTHLY_TEMPLATE.format(
        month=month_data.month,
        total_items=month_data.total_items,
        total_quantity=month_data.total_quantity,
        reject_count=month_data.reject_count,
        reject_rate=reject_rate,
        top_products=top_products or "- None recorded",
        mais=month_data.destinations.mais,
        fozan=month_data.destinations.fozan,
    )


def question_prompt(question: str, context: InventoryContext) -> str:
    recent = "\n".join(
        f"- {a.item_name}: {a.quantity} units to {a.destination} on {a.date}"
        for a in context.recent_activity
    )
    low_stock = _fmt_section(
        "Low Stock Items",
        [
            f"- {i.item_name}: {i.current_stock} units (reorder at {i.reorder_point})"
            for i in context.low_stock_items or []
        ],
    )
    categories = _fmt_section(
        "Top Categories",
        [f"- {c.category}: {c.count} items" for c in context.top_categories or []],
    )
    return QUESTION_TEMPLATE.format(
        total_items=context.total_items,
        total_quantity=context.total_quantity,
        recent_activity=recent or "- No recent activity",
        low_stock=low_stock,
        categories=categories,
        question=question,
        escaped_question=question.replace('"', '\\"'),
    )
