"""Unit tests for BOM text analysis."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from bomcheck.analysis.bom_text import (
    BOMAnalyzer,
    analyze_with_keywords,
    match_make,
    normalize_ai_response,
    suggest_category,
)
from bomcheck.config import LLMConfig
from bomcheck.exceptions import InputError

BOM_TEXT = """Item  Description  Quantity
2 Servo motor 400W
Proximity sensor PNP 6
Emergency stop button
"""


def _client(content: str | Exception) -> MagicMock:
    client = MagicMock()
    if isinstance(content, Exception):
        client.chat.completions.create = AsyncMock(side_effect=content)
    else:
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )
        client.chat.completions.create = AsyncMock(return_value=response)
    return client


class TestKeywordAnalysis:
    def test_header_lines_skipped(self):
        result = analyze_with_keywords(BOM_TEXT)
        assert result.total_items == 3
        assert result.method == "keywords"

    def test_quantity_and_name(self):
        [servo, sensor, estop] = analyze_with_keywords(BOM_TEXT).items

        assert servo.quantity == 2
        assert servo.name == "Servo motor W"
        assert sensor.quantity == 6
        assert sensor.name == "Proximity sensor PNP"
        assert estop.quantity == 1

    def test_categories_from_keywords(self):
        [servo, sensor, estop] = analyze_with_keywords(BOM_TEXT).items

        assert servo.category == "Motors & Drives"
        assert sensor.category == "Sensors"
        assert estop.category == "Safety"

    def test_confidence_scales_with_hits(self):
        [servo, _, _] = analyze_with_keywords(BOM_TEXT).items
        assert servo.confidence == pytest.approx(0.8)

        [unknown] = analyze_with_keywords("Widget assembly").items
        assert unknown.category == "Uncategorized"
        assert unknown.confidence == 0.5

    def test_sku_token(self):
        [item] = analyze_with_keywords("1 Relay module MY2N-24VDC").items
        assert item.sku == "MY2N-24VDC"
        assert item.category == "Electrical"

    def test_makes_matched(self):
        [item] = analyze_with_keywords("Siemens servo drive", ["Siemens"]).items
        assert item.make == "Siemens"

    def test_empty_text_has_no_items(self):
        result = analyze_with_keywords("\n\n")
        assert result.items == []
        assert result.confidence == 0.0


class TestHelpers:
    def test_suggest_category_first_wins_on_tie(self):
        # "valve" and "cylinder" are both Pneumatic and Hydraulic keywords
        assert suggest_category("valve cylinder") == ("Pneumatic", 2)

    def test_match_make_by_word(self):
        assert match_make("rockwell contactor", ["Rockwell Automation"]) == "Rockwell Automation"

    def test_match_make_ignores_short_words(self):
        assert match_make("abb contactor", ["ABB"]) == "ABB"
        assert match_make("ltd contactor", ["ABB Ltd"]) is None


class TestNormalizeAIResponse:
    def test_fills_defaults(self):
        result = normalize_ai_response(
            {"items": [{"make": "null", "quantity": "3", "confidence": 7}, {}]}
        )
        first, second = result.items

        assert first.name == "Item 1"
        assert first.make is None
        assert first.quantity == 3
        assert first.confidence == 1.0
        assert first.description == "No description provided"
        assert second.name == "Item 2"
        assert second.quantity == 1
        assert second.category == "Uncategorized"
        assert result.suggested_categories == ["Uncategorized"]
        assert result.method == "ai"

    def test_overall_confidence_used(self):
        result = normalize_ai_response({"items": [], "overallConfidence": 0.7})
        assert result.confidence == 0.7

    def test_suggested_category_field(self):
        result = normalize_ai_response(
            {"items": [{"name": "PLC", "suggestedCategory": "Control Systems"}]}
        )
        assert result.items[0].category == "Control Systems"

    def test_missing_items_rejected(self):
        with pytest.raises(ValueError):
            normalize_ai_response({"components": []})


class TestBOMAnalyzer:
    async def test_empty_text_is_input_error(self):
        with pytest.raises(InputError):
            await BOMAnalyzer(LLMConfig()).analyze("   ")

    async def test_ai_result(self):
        payload = {
            "items": [{"name": "Servo Motor", "make": "Siemens", "quantity": 2, "confidence": 0.9}],
            "suggestedCategories": ["Motors & Drives"],
            "overallConfidence": 0.9,
        }
        client = _client(json.dumps(payload))
        analyzer = BOMAnalyzer(LLMConfig(api_key="sk-test"), client=client)

        result = await analyzer.analyze("2 Servo Motor Siemens", existing_makes=["Siemens"])

        assert result.method == "ai"
        assert result.items[0].make == "Siemens"
        assert result.suggested_categories == ["Motors & Drives"]
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "Siemens" in kwargs["messages"][0]["content"]

    async def test_falls_back_to_keywords_without_key(self):
        result = await BOMAnalyzer(LLMConfig()).analyze(BOM_TEXT)
        assert result.method == "keywords"
        assert result.total_items == 3

    async def test_falls_back_to_keywords_on_ai_error(self):
        analyzer = BOMAnalyzer(LLMConfig(api_key="sk-test"), client=_client(RuntimeError("boom")))
        result = await analyzer.analyze(BOM_TEXT)
        assert result.method == "keywords"

    async def test_falls_back_on_malformed_json(self):
        analyzer = BOMAnalyzer(LLMConfig(api_key="sk-test"), client=_client("not json"))
        result = await analyzer.analyze(BOM_TEXT)
        assert result.method == "keywords"
