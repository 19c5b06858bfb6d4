"""Unit tests for translating reconciliation results into issues."""

from __future__ import annotations

import pytest

from bomcheck.compliance.reconciliation import (
    MATCH_SCORE_THRESHOLD,
    SUGGESTED_FIX_CONFIDENCE,
    classify_mismatch,
    issues_from_reconciliation,
)
from bomcheck.models import IssueType, ReconciliationResult, Severity


@pytest.fixture
def items_by_id(make_item):
    return {
        "item-1": make_item(),
        "item-2": make_item(id="item-2", name="Proximity Sensor M12", sku="NBB4-12GM50"),
    }


def _result(**payload) -> ReconciliationResult:
    return ReconciliationResult.model_validate(payload)


def _analysis(line_matches=None, unmatched=None):
    return {
        "documentId": "quote-1",
        "documentName": "Acme quote Q-1042.pdf",
        "vendorName": "Acme",
        "lineMatches": line_matches or [],
        "unmatchedQuoteLines": 0,
        "unmatchedBOMItems": unmatched or [],
    }


class TestClassifyMismatch:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Unit price differs: 1200 vs 1000", (IssueType.PRICE_MISMATCH, Severity.WARNING)),
            ("PRICE is higher", (IssueType.PRICE_MISMATCH, Severity.WARNING)),
            ("Quantity differs: 2 vs 4", (IssueType.QUANTITY_MISMATCH, Severity.INFO)),
            ("Make differs: ABB vs Siemens", (IssueType.QUOTE_MISMATCH, Severity.INFO)),
        ],
    )
    def test_keyword_classification(self, text, expected):
        assert classify_mismatch(text) == expected

    def test_price_wins_over_quantity(self):
        assert classify_mismatch("price and quantity differ")[0] == IssueType.PRICE_MISMATCH


class TestLineMatches:
    def test_mismatches_become_issues(self, items_by_id):
        result = _result(
            quoteAnalysis=[
                _analysis(
                    [
                        {
                            "quoteLineItem": {"partName": "Servo 400W", "partNumber": "1FK7022"},
                            "bomItemId": "item-1",
                            "bomItemName": "Servo",
                            "matchScore": 82.4,
                            "mismatches": [
                                "Price differs: quote 20000 vs BOM 18500",
                                "Quantity differs: quote 2 vs BOM 4",
                                "Make differs: quote ABB vs BOM Siemens",
                            ],
                        }
                    ]
                )
            ]
        )
        outcome = issues_from_reconciliation(result, items_by_id)

        assert outcome.quotes_matched == 1
        assert [i.issue_type for i in outcome.issues] == [
            IssueType.PRICE_MISMATCH,
            IssueType.QUANTITY_MISMATCH,
            IssueType.QUOTE_MISMATCH,
        ]
        price = outcome.issues[0]
        assert price.bom_item_name == "Servo Motor 400W"
        assert price.document_id == "quote-1"
        assert price.document_name == "Acme quote Q-1042.pdf"
        assert price.confidence == 82
        assert price.details == "Price differs: quote 20000 vs BOM 18500"

    def test_clean_match_counts_without_issues(self, items_by_id):
        result = _result(
            quoteAnalysis=[_analysis([{"bomItemId": "item-1", "matchScore": 95}])]
        )
        outcome = issues_from_reconciliation(result, items_by_id)
        assert outcome.quotes_matched == 1
        assert outcome.issues == []

    def test_low_score_is_ignored(self, items_by_id):
        result = _result(
            quoteAnalysis=[
                _analysis(
                    [
                        {
                            "bomItemId": "item-1",
                            "matchScore": MATCH_SCORE_THRESHOLD - 1,
                            "mismatches": ["Price differs"],
                        }
                    ]
                )
            ]
        )
        outcome = issues_from_reconciliation(result, items_by_id)
        assert outcome.quotes_matched == 0
        assert outcome.issues == []

    def test_threshold_is_inclusive(self, items_by_id):
        result = _result(
            quoteAnalysis=[_analysis([{"bomItemId": "item-1", "matchScore": 50}])]
        )
        assert issues_from_reconciliation(result, items_by_id).quotes_matched == 1

    def test_threshold_is_overridable(self, items_by_id):
        result = _result(
            quoteAnalysis=[_analysis([{"bomItemId": "item-1", "matchScore": 60}])]
        )
        outcome = issues_from_reconciliation(result, items_by_id, threshold=70)
        assert outcome.quotes_matched == 0

    def test_unmatched_line_is_ignored(self, items_by_id):
        result = _result(
            quoteAnalysis=[
                _analysis([{"bomItemId": None, "matchScore": 90, "mismatches": ["x"]}])
            ]
        )
        outcome = issues_from_reconciliation(result, items_by_id)
        assert outcome.quotes_matched == 0
        assert outcome.issues == []


class TestUnmatchedItems:
    def test_known_items_get_missing_quote_info(self, items_by_id):
        result = _result(quoteAnalysis=[_analysis(unmatched=["item-2", "ghost"])])
        [issue] = issues_from_reconciliation(result, items_by_id).issues

        assert issue.bom_item_id == "item-2"
        assert issue.issue_type == IssueType.MISSING_QUOTE
        assert issue.severity == Severity.INFO
        assert "Acme quote Q-1042.pdf" in issue.details


class TestSuggestedFixes:
    def test_changed_sku_suggestion(self, items_by_id):
        result = _result(
            suggestedFixes=[
                {
                    "bomItemId": "item-2",
                    "field": "sku",
                    "currentValue": "NBB4-12GM50",
                    "suggestedValue": "NBB4-12GM50-E2",
                    "reason": "Quote lists the full ordering code",
                }
            ]
        )
        [issue] = issues_from_reconciliation(result, items_by_id).issues

        assert issue.issue_type == IssueType.INVALID_SKU
        assert issue.severity == Severity.INFO
        assert issue.confidence == SUGGESTED_FIX_CONFIDENCE
        assert issue.current_value == "NBB4-12GM50"
        assert issue.suggested_fix.field == "sku"
        assert issue.suggested_fix.suggested_value == "NBB4-12GM50-E2"
        assert issue.details == "Quote lists the full ordering code"

    @pytest.mark.parametrize(
        "field, expected",
        [
            ("name", IssueType.NAME_FORMAT),
            ("description", IssueType.DESCRIPTION_MISMATCH),
            ("make", IssueType.INVALID_SKU),
        ],
    )
    def test_issue_type_follows_field(self, items_by_id, field, expected):
        result = _result(
            suggestedFixes=[{"bomItemId": "item-1", "field": field, "suggestedValue": "New"}]
        )
        [issue] = issues_from_reconciliation(result, items_by_id).issues
        assert issue.issue_type == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "Siemens"])
    def test_empty_or_unchanged_values_are_dropped(self, items_by_id, value):
        result = _result(
            suggestedFixes=[{"bomItemId": "item-1", "field": "make", "suggestedValue": value}]
        )
        assert issues_from_reconciliation(result, items_by_id).issues == []

    def test_fix_confidence_is_overridable(self, items_by_id):
        result = _result(
            suggestedFixes=[{"bomItemId": "item-1", "field": "sku", "suggestedValue": "X-1"}]
        )
        [issue] = issues_from_reconciliation(result, items_by_id, fix_confidence=60).issues
        assert issue.confidence == 60


def test_corrections_follow_quote_issues(items_by_id):
    result = _result(
        quoteAnalysis=[_analysis(unmatched=["item-2"])],
        suggestedFixes=[{"bomItemId": "item-1", "field": "sku", "suggestedValue": "X-1"}],
    )
    issues = issues_from_reconciliation(result, items_by_id).issues
    assert [i.issue_type for i in issues] == [IssueType.MISSING_QUOTE, IssueType.INVALID_SKU]
