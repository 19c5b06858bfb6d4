"""Compliance report assembly.

All aggregates are derived from the final issue list in a single reduction,
so the counts can never drift from the issues they describe.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import uuid4

from bomcheck.models import (
    QUOTE_MISMATCH_TYPES,
    ComplianceReport,
    Issue,
    Severity,
)

ERROR_WEIGHT = 3.0
WARNING_WEIGHT = 1.5
INFO_WEIGHT = 0.5


def number_issues(issues: Iterable[Issue]) -> list[Issue]:
    """Assign per-report sequential ids (issue-1, issue-2, ...) in list order."""
    return [
        issue.model_copy(update={"id": f"issue-{index}"})
        for index, issue in enumerate(issues, start=1)
    ]


def tally(issues: list[Issue]) -> dict:
    """Fold an issue list into the report's aggregate counters."""
    by_type = Counter(issue.issue_type.value for issue in issues)
    by_severity = Counter(issue.severity.value for issue in issues)
    return {
        "total_issues": len(issues),
        "items_with_issues": len({issue.bom_item_id for issue in issues}),
        "issues_by_type": dict(by_type),
        "issues_by_severity": {s.value: by_severity.get(s.value, 0) for s in Severity},
        "quote_mismatches": sum(
            1 for issue in issues if issue.issue_type in QUOTE_MISMATCH_TYPES
        ),
    }


def compliance_score(
    total_items: int, issues_by_severity: dict[str, int]
) -> int:
    """Severity-weighted score in [0, 100]; 100 when there is nothing to check."""
    if total_items == 0:
        return 100
    weighted = (
        issues_by_severity.get(Severity.ERROR.value, 0) * ERROR_WEIGHT
        + issues_by_severity.get(Severity.WARNING.value, 0) * WARNING_WEIGHT
        + issues_by_severity.get(Severity.INFO.value, 0) * INFO_WEIGHT
    )
    return round(max(0.0, 100 - (weighted / total_items) * 20))


def assemble_report(
    project_id: str,
    total_items_checked: int,
    issues: Iterable[Issue],
    *,
    quotes_analyzed: int = 0,
    documents_parsed: int = 0,
    quotes_matched: int = 0,
    processing_time_ms: int = 0,
    report_id: str | None = None,
    created_at: datetime | None = None,
) -> ComplianceReport:
    """Build a ComplianceReport from the combined validation + matching issues."""
    numbered = number_issues(issues)
    counts = tally(numbered)

    return ComplianceReport(
        id=report_id or f"report-{uuid4().hex[:12]}",
        project_id=project_id,
        created_at=created_at or datetime.now(timezone.utc),
        total_items_checked=total_items_checked,
        quotes_analyzed=quotes_analyzed,
        documents_parsed=documents_parsed,
        quotes_matched=quotes_matched,
        issues=numbered,
        processing_time_ms=processing_time_ms,
        compliance_score=compliance_score(
            total_items_checked, counts["issues_by_severity"]
        ),
        **counts,
    )
