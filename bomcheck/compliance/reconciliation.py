"""Translate a quote reconciliation result into compliance issues.

The reconciliation step (LLM or fuzzy matcher) reports, per quote, which
quote lines matched which BOM items and what did not agree. This module turns
that into Issue models:

- matched lines (score >= threshold) count towards ``quotes_matched`` and emit
  one issue per mismatch string, typed by keyword (price / quantity / other)
- BOM items the quote was expected to cover but did not -> info missing-quote
- suggested field corrections with a changed value -> info issue typed by field
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from bomcheck.models import (
    BOMItem,
    Issue,
    IssueType,
    QuoteAnalysis,
    ReconciliationResult,
    Severity,
    SuggestedCorrection,
    SuggestedFix,
)

MATCH_SCORE_THRESHOLD = 50
SUGGESTED_FIX_CONFIDENCE = 75

_FIELD_ISSUE_TYPES = {
    "name": IssueType.NAME_FORMAT,
    "description": IssueType.DESCRIPTION_MISMATCH,
}


@dataclass
class MatchingOutcome:
    """Issues produced by the matching pass plus the matched-line count."""

    issues: list[Issue] = field(default_factory=list)
    quotes_matched: int = 0


def classify_mismatch(text: str) -> tuple[IssueType, Severity]:
    """Map a free-text mismatch description onto an issue type and severity."""
    lowered = text.lower()
    if "price" in lowered:
        return IssueType.PRICE_MISMATCH, Severity.WARNING
    if "quantity" in lowered:
        return IssueType.QUANTITY_MISMATCH, Severity.INFO
    return IssueType.QUOTE_MISMATCH, Severity.INFO


def issues_from_reconciliation(
    result: ReconciliationResult,
    items_by_id: Mapping[str, BOMItem],
    threshold: float = MATCH_SCORE_THRESHOLD,
    fix_confidence: int = SUGGESTED_FIX_CONFIDENCE,
) -> MatchingOutcome:
    """Build matching-pass issues from a reconciliation result.

    Args:
        result: Parsed reconciliation output
        items_by_id: BOM items keyed by id
        threshold: Minimum match score for a line match to count
        fix_confidence: Confidence attached to suggested-correction issues

    Returns:
        MatchingOutcome with issues in quote order followed by corrections
    """
    outcome = MatchingOutcome()

    for analysis in result.quote_analysis:
        _translate_quote(analysis, items_by_id, threshold, outcome)

    for correction in result.suggested_fixes:
        issue = _correction_issue(correction, items_by_id, fix_confidence)
        if issue is not None:
            outcome.issues.append(issue)

    return outcome


def _translate_quote(
    analysis: QuoteAnalysis,
    items_by_id: Mapping[str, BOMItem],
    threshold: float,
    outcome: MatchingOutcome,
) -> None:
    document_name = analysis.document_name or analysis.document_id

    for match in analysis.line_matches:
        if not match.bom_item_id or match.match_score < threshold:
            continue

        outcome.quotes_matched += 1
        item = items_by_id.get(match.bom_item_id)
        item_name = _item_name(item, match.bom_item_name)
        category = _item_category(item)
        line_label = match.quote_line_item.part_name or match.quote_line_item.code or "quote line"

        for mismatch in match.mismatches:
            issue_type, severity = classify_mismatch(mismatch)
            outcome.issues.append(
                Issue(
                    bom_item_id=match.bom_item_id,
                    bom_item_name=item_name,
                    category=category,
                    issue_type=issue_type,
                    severity=severity,
                    message=_mismatch_message(issue_type, document_name),
                    details=mismatch,
                    current_value=line_label,
                    document_id=analysis.document_id,
                    document_name=document_name,
                    confidence=round(match.match_score),
                )
            )

    for item_id in analysis.unmatched_bom_items:
        item = items_by_id.get(item_id)
        if item is None:
            continue
        outcome.issues.append(
            Issue(
                bom_item_id=item.id,
                bom_item_name=_item_name(item),
                category=_item_category(item),
                issue_type=IssueType.MISSING_QUOTE,
                severity=Severity.INFO,
                message="Item not found in linked quote",
                details=f"No line in '{document_name}' matches this BOM item.",
                document_id=analysis.document_id,
                document_name=document_name,
            )
        )


def _correction_issue(
    correction: SuggestedCorrection,
    items_by_id: Mapping[str, BOMItem],
    fix_confidence: int,
) -> Issue | None:
    suggested = _as_text(correction.suggested_value)
    if not suggested:
        return None

    item = items_by_id.get(correction.bom_item_id)
    current = _current_value(item, correction)
    if suggested == current:
        return None

    issue_type = _FIELD_ISSUE_TYPES.get(correction.field, IssueType.INVALID_SKU)
    return Issue(
        bom_item_id=correction.bom_item_id,
        bom_item_name=_item_name(item),
        category=_item_category(item),
        issue_type=issue_type,
        severity=Severity.INFO,
        message=f"Suggested {correction.field} correction",
        details=correction.reason or f"Quote suggests '{suggested}' for {correction.field}.",
        current_value=current or None,
        suggested_fix=SuggestedFix(
            field=correction.field,
            suggested_value=suggested,
            description=f"Update {correction.field} to '{suggested}'",
        ),
        confidence=fix_confidence,
    )


def _current_value(item: BOMItem | None, correction: SuggestedCorrection) -> str:
    if item is not None and correction.field in BOMItem.model_fields:
        return _as_text(getattr(item, correction.field))
    return _as_text(correction.current_value)


def _mismatch_message(issue_type: IssueType, document_name: str) -> str:
    if issue_type == IssueType.PRICE_MISMATCH:
        return f"Price differs from quote '{document_name}'"
    if issue_type == IssueType.QUANTITY_MISMATCH:
        return f"Quantity differs from quote '{document_name}'"
    return f"Quote '{document_name}' does not match BOM item"


def _item_name(item: BOMItem | None, fallback: str | None = None) -> str:
    if item is not None and item.name and item.name.strip():
        return item.name.strip()
    return fallback or "Unknown item"


def _item_category(item: BOMItem | None) -> str:
    if item is not None and item.category and item.category.strip():
        return item.category.strip()
    return "Uncategorized"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()
