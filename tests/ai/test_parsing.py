"""Tests for JSON extraction and the prompt builders."""

import pytest
from pydantic import TypeAdapter

from medinventory.ai import prompts
from medinventory.ai.parsing import extract_json, parse_response
from medinventory.ai.types import (
    InventoryContext,
    InventoryItem,
    InventoryTrend,
    MonthlyData,
    MonthlyInsight,
)
from medinventory.services.errors import MalformedResponseError


class TestExtractJson:
    def test_plain_array(self):
        assert extract_json("[1, 2]", "array") == [1, 2]

    def test_fenced_array_with_prose(self):
        text = 'Sure! Here you go:\n```json\n[{"a": 1}]\n```\nAnything else?'
        assert extract_json(text, "array") == [{"a": 1}]

    def test_skips_brackets_that_are_not_json(self):
        assert extract_json("[note] then [3, 4]", "array") == [3, 4]

    def test_object(self):
        assert extract_json('Result: {"x": {"y": 2}} done', "object") == {"x": {"y": 2}}

    def test_missing_array(self):
        with pytest.raises(MalformedResponseError, match="no JSON array"):
            extract_json('{"only": "object"}', "array")

    def test_missing_object(self):
        with pytest.raises(MalformedResponseError, match="no JSON object"):
            extract_json("nothing here", "object")

    def test_truncated_json(self):
        with pytest.raises(MalformedResponseError):
            extract_json('[{"a": 1}, {"b":', "array")


class TestParseResponse:
    def test_validates_camel_case_fields(self):
        text = (
            '{"summary": "ok", "keyFindings": ["a"], "trends": [], '
            '"recommendations": ["r"], "confidence": 0.9}'
        )
        insight = parse_response(text, TypeAdapter(MonthlyInsight), "object")
        assert insight.key_findings == ["a"]
        assert insight.confidence == 0.9

    def test_shape_mismatch(self):
        text = '[{"product": "A", "trend": "sideways", "confidence": 1, "recommendation": ""}]'
        with pytest.raises(MalformedResponseError, match="expected shape"):
            parse_response(text, TypeAdapter(list[InventoryTrend]), "array")


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------

ITEM = InventoryItem(
    product_id="1",
    product_name="Surgical Gloves",
    current_stock=250,
    min_stock_level=50,
    max_stock_level=500,
    reorder_point=100,
    average_usage=80,
)


class TestPrompts:
    def test_trends_prompt(self):
        prompt = prompts.trends_prompt([ITEM])
        assert "Product: Surgical Gloves" in prompt
        assert "Max Level: 500" in prompt
        assert "Average Usage: 80" in prompt
        assert "JSON array" in prompt

    def test_insights_prompt_omits_usage(self):
        prompt = prompts.insights_prompt([ITEM])
        assert "Average Usage" not in prompt
        assert "Reorder Point: 100" in prompt

    def test_predictions_prompt(self):
        prompt = prompts.predictions_prompt([ITEM])
        assert "Max Level" not in prompt
        assert "Average Usage: 80 units/month" in prompt

    def test_monthly_prompt(self):
        month = MonthlyData.model_validate(
            {
                "month": "2024-01",
                "totalItems": 3,
                "totalQuantity": 1000,
                "rejectCount": 100,
                "destinations": {"MAIS": 600, "FOZAN": 400},
            }
        )
        prompt = prompts.monthly_prompt(month, 10.0)
        assert "Reject Rate: 10.00%" in prompt
        assert "- MAIS: 600 units" in prompt
        assert "- None recorded" in prompt
        assert '"keyFindings"' in prompt

    def test_question_prompt(self):
        context = InventoryContext.model_validate(
            {
                "totalItems": 2,
                "totalQuantity": 50,
                "lowStockItems": [
                    {"itemName": "Masks", "currentStock": 5, "reorderPoint": 20}
                ],
            }
        )
        prompt = prompts.question_prompt('Is "Masks" low?', context)
        assert "Low Stock Items:" in prompt
        assert "Top Categories" not in prompt
        assert "- No recent activity" in prompt
        assert '"question": "Is \\"Masks\\" low?"' in prompt
