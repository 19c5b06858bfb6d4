"""Unit tests for the RapidFuzz reconciler."""

from __future__ import annotations

import pytest

from bomcheck.compliance.reconciliation import issues_from_reconciliation
from bomcheck.matching.fuzzy_reconciler import (
    FuzzyReconciler,
    canonical_make,
    line_mismatches,
)
from bomcheck.models import ComplianceSettings, IssueType, QuoteLineItem


@pytest.fixture
def reconciler() -> FuzzyReconciler:
    return FuzzyReconciler(min_score=50)


@pytest.fixture
def bom_items(make_item):
    return [
        make_item().summary(),
        make_item(
            id="item-2",
            name="Inductive Proximity Sensor",
            description="M12 PNP proximity sensor, 4mm range",
            category="Sensors",
            make="Omron",
            sku="E2E-X4MD1",
            quantity=10,
            price=2400,
        ).summary(),
    ]


def _quote(lines=None, raw_text=None, linked=("item-1", "item-2")):
    quote = {
        "documentId": "quote-1",
        "documentName": "Acme quote Q-1042.pdf",
        "linkedBOMItems": list(linked),
    }
    if lines is not None:
        quote["lineItems"] = lines
    if raw_text is not None:
        quote["rawText"] = raw_text
    return quote


class TestLineMatching:
    async def test_exact_part_number_match(self, reconciler, bom_items, servo_line):
        result = await reconciler.match(bom_items, [_quote([servo_line])])

        [analysis] = result.quote_analysis
        [match] = analysis.line_matches
        assert match.bom_item_id == "item-1"
        assert match.match_score == 100
        assert match.match_reasons == ["Exact part number match"]
        assert match.mismatches == []
        assert analysis.total_line_items == 1
        assert analysis.unmatched_bom_items == ["item-2"]

    async def test_part_number_ignores_separators_and_case(self, reconciler, bom_items):
        line = {"partName": "Sensor", "partNumber": "e2e x4md1", "quantity": 10}
        result = await reconciler.match(bom_items, [_quote([line])])
        assert result.quote_analysis[0].line_matches[0].bom_item_id == "item-2"

    async def test_name_similarity_match(self, reconciler, bom_items):
        line = {"partName": "OMRON inductive proximity sensor M12", "quantity": 10}
        result = await reconciler.match(bom_items, [_quote([line])])

        [match] = result.quote_analysis[0].line_matches
        assert match.bom_item_id == "item-2"
        assert match.match_score >= 50
        assert match.match_reasons[0].startswith("Name similarity")

    async def test_unrelated_line_is_unmatched(self, reconciler, bom_items):
        line = {"partName": "Freight"}
        result = await reconciler.match(bom_items, [_quote([line])])

        [analysis] = result.quote_analysis
        assert analysis.line_matches[0].bom_item_id is None
        assert analysis.unmatched_quote_lines == 1
        assert analysis.unmatched_bom_items == ["item-1", "item-2"]

    async def test_item_claimed_once_per_quote(self, reconciler, bom_items, servo_line):
        result = await reconciler.match(bom_items, [_quote([servo_line, dict(servo_line)])])
        matched = [m.bom_item_id for m in result.quote_analysis[0].line_matches]
        assert matched.count("item-1") == 1

    async def test_mismatches_become_issues(self, reconciler, bom_items, make_item, servo_line):
        line = {**servo_line, "unitPrice": 21000, "quantity": 5}
        result = await reconciler.match(bom_items, [_quote([line])])

        outcome = issues_from_reconciliation(result, {"item-1": make_item()})
        types = [issue.issue_type for issue in outcome.issues]
        assert IssueType.PRICE_MISMATCH in types
        assert IssueType.QUANTITY_MISMATCH in types
        assert outcome.quotes_matched == 1


class TestSuggestedFixes:
    async def test_missing_make_suggested_from_line(self, reconciler, make_item):
        items = [make_item(make=None).summary()]
        line = {"partName": "Servo", "partNumber": "1FK7022-5AK71", "make": "Siemens"}
        result = await reconciler.match(items, [_quote([line], linked=["item-1"])])

        [fix] = result.suggested_fixes
        assert fix.bom_item_id == "item-1"
        assert fix.field == "make"
        assert fix.suggested_value == "Siemens"

    async def test_fix_deduplicated_across_quotes(self, reconciler, make_item):
        items = [make_item(make=None).summary()]
        line = {"partName": "Servo", "partNumber": "1FK7022-5AK71", "make": "Siemens"}
        quotes = [_quote([line], linked=["item-1"]), _quote([line], linked=["item-1"])]
        result = await reconciler.match(items, quotes)
        assert len(result.suggested_fixes) == 1

    async def test_suggested_make_uses_project_spelling(self, reconciler, make_item):
        items = [make_item(make=None).summary()]
        line = {"partName": "Servo", "partNumber": "1FK7022-5AK71", "make": "SIEMENS"}
        settings = ComplianceSettings(existing_makes=["ABB", "Siemens"])
        result = await reconciler.match(items, [_quote([line], linked=["item-1"])], settings)

        [fix] = result.suggested_fixes
        assert fix.suggested_value == "Siemens"

    @pytest.mark.parametrize(
        "make, expected",
        [("siemens ag", "Siemens AG"), ("Schneider", "Schneider"), ("Omron", "Omron")],
    )
    def test_canonical_make(self, make, expected):
        assert canonical_make(make, ["Siemens AG", "ABB", "Phoenix Contact"]) == expected

    def test_canonical_make_without_project_makes(self):
        assert canonical_make("Siemens", []) == "Siemens"


class TestRawTextQuotes:
    async def test_sku_found_in_raw_text(self, reconciler, bom_items):
        text = "QUOTATION\nSr 1  Siemens servo 1FK7022 5AK71  4 nos  18,500.00"
        result = await reconciler.match(bom_items, [_quote(raw_text=text)])

        [analysis] = result.quote_analysis
        [match] = analysis.line_matches
        assert match.bom_item_id == "item-1"
        assert match.match_reasons == ["Part number found in quote text"]
        assert analysis.unmatched_bom_items == ["item-2"]


class TestLineMismatches:
    def test_price_within_tolerance(self):
        line = QuoteLineItem(part_name="x", unit_price=19000)
        assert line_mismatches(line, {"price": 18500}) == []

    def test_price_outside_tolerance(self):
        line = QuoteLineItem(part_name="x", unit_price=20000)
        assert line_mismatches(line, {"price": 18500}) == [
            "Price differs: quote 20000 vs BOM 18500"
        ]

    def test_make_compared_case_insensitively(self):
        line = QuoteLineItem(part_name="x", make="SIEMENS")
        assert line_mismatches(line, {"make": "Siemens"}) == []

    def test_different_make(self):
        line = QuoteLineItem(part_name="x", make="ABB")
        assert line_mismatches(line, {"make": "Siemens"}) == [
            "Make differs: quote ABB vs BOM Siemens"
        ]

    def test_missing_values_are_not_mismatches(self):
        assert line_mismatches(QuoteLineItem(part_name="x"), {"price": 100, "quantity": 2}) == []
