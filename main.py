"""
Inventory insight smoke run.

Runs every insight operation against sample inventory and logs what
comes back, or checks the configured API key with --validate-key.
"""

import argparse
import asyncio
import sys

from loguru import logger

from medinventory.ai import (
    InventoryContext,
    InventoryItem,
    MonthlyData,
    get_insight_service,
    reset_insight_service,
)
from medinventory.services.client import validate_api_key
from medinventory.settings import global_settings

SAMPLE_ITEMS = [
    InventoryItem(
        product_id="1",
        product_name="Surgical Gloves",
        current_stock=250,
        min_stock_level=50,
        max_stock_level=500,
        reorder_point=100,
        average_usage=80,
    ),
    InventoryItem(
        product_id="2",
        product_name="Face Masks",
        current_stock=45,
        min_stock_level=100,
        max_stock_level=1000,
        reorder_point=200,
        average_usage=150,
    ),
    InventoryItem(
        product_id="3",
        product_name="Insulin Syringes",
        current_stock=800,
        min_stock_level=30,
        max_stock_level=300,
        reorder_point=75,
        average_usage=50,
    ),
]

SAMPLE_MONTH = MonthlyData.model_validate(
    {
        "month": "2024-01",
        "totalItems": 120,
        "totalQuantity": 4800,
        "rejectCount": 96,
        "topProducts": [{"name": "Face Masks", "quantity": 1500}],
        "destinations": {"MAIS": 3100, "FOZAN": 1700},
    }
)

SAMPLE_CONTEXT = InventoryContext.model_validate(
    {
        "totalItems": 120,
        "totalQuantity": 4800,
        "recentActivity": [
            {
                "itemName": "Face Masks",
                "quantity": 300,
                "destination": "MAIS",
                "date": "2024-01-28",
            }
        ],
        "lowStockItems": [
            {"itemName": "Face Masks", "currentStock": 45, "reorderPoint": 200}
        ],
    }
)


async def run_insights() -> None:
    """Run all operations once and log the results."""
    service = get_insight_service()
    logger.info(f"AI available: {service.is_available()}")

    try:
        for trend in await service.analyze_trends(SAMPLE_ITEMS):
            logger.info(f"Trend: {trend.product} -> {trend.trend} ({trend.confidence})")

        for insight in await service.generate_insights(SAMPLE_ITEMS):
            logger.info(f"Insight [{insight.priority}] {insight.message}")

        for prediction in await service.predict_needs(SAMPLE_ITEMS):
            logger.info(
                f"Prediction: {prediction.product} needs {prediction.predicted_need} "
                f"over {prediction.timeframe}"
            )

        summary = await service.summarize_month(SAMPLE_MONTH)
        logger.info(f"Monthly summary: {summary.summary}")

        answer = await service.answer_question(
            "Which items are low stock?", SAMPLE_CONTEXT
        )
        logger.info(f"Answer ({answer.confidence}): {answer.answer}")

        logger.info(f"Circuit state: {service.circuit_state()}")
        logger.info(f"Cache size: {service.cache_stats().size}")

    finally:
        await reset_insight_service()


async def run_validation() -> bool:
    result = await validate_api_key(
        global_settings.gemini_api_key,
        model=global_settings.gemini_model,
        base_url=global_settings.gemini_base_url,
        timeout=global_settings.gemini_timeout,
    )
    if result.valid:
        logger.info(result.message)
    else:
        logger.error(result.message)
    return result.valid


def main() -> None:
    parser = argparse.ArgumentParser(description="Inventory AI insight smoke run")
    parser.add_argument(
        "--validate-key",
        action="store_true",
        help="check GEMINI_API_KEY against the API and exit",
    )
    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level)

    if args.validate_key:
        sys.exit(0 if asyncio.run(run_validation()) else 1)

    asyncio.run(run_insights())


if __name__ == "__main__":
    main()
