"""Helpers for slicing a compliance report's issue list for display."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from bomcheck.models import Issue


def group_issues_by_item(issues: Iterable[Issue]) -> dict[str, list[Issue]]:
    """Group issues by BOM item id, preserving first-seen order."""
    grouped: dict[str, list[Issue]] = {}
    for issue in issues:
        grouped.setdefault(issue.bom_item_id, []).append(issue)
    return grouped


def filter_issues(
    issues: Iterable[Issue],
    types: Sequence[str] | None = None,
    severities: Sequence[str] | None = None,
    search_query: str | None = None,
) -> list[Issue]:
    """Filter issues by type, severity and a case-insensitive text search.

    Empty filters are ignored. The search matches item name, message or details.
    """
    query = search_query.lower() if search_query else None
    result = []
    for issue in issues:
        if types and issue.issue_type.value not in types:
            continue
        if severities and issue.severity.value not in severities:
            continue
        if query and not (
            query in issue.bom_item_name.lower()
            or query in issue.message.lower()
            or query in issue.details.lower()
        ):
            continue
        result.append(issue)
    return result


def format_processing_time(ms: int | float) -> str:
    if ms < 1000:
        return f"{int(ms)}ms"
    return f"{ms / 1000:.1f}s"
