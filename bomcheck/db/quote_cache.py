"""Persistence helpers: parsed-quote cache and report snapshots."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bomcheck.db.connection import get_session
from bomcheck.db.models import ComplianceReportModel, ParsedQuoteModel
from bomcheck.models import ComplianceReport, ParsedQuoteData

logger = logging.getLogger(__name__)

SessionProvider = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class SqlQuoteCache:
    """QuoteCache backed by the parsed_quotes table.

    Each call opens its own session so a cache failure never poisons the
    caller's transaction.
    """

    def __init__(self, session_provider: SessionProvider = get_session):
        self._session = session_provider

    async def get(self, document_id: str) -> ParsedQuoteData | None:
        async with self._session() as session:
            row = await session.get(ParsedQuoteModel, document_id)
            if row is None:
                return None
            return ParsedQuoteData.model_validate(row.data)

    async def put(self, document_id: str, data: ParsedQuoteData) -> None:
        async with self._session() as session:
            row = await session.get(ParsedQuoteModel, document_id)
            if row is None:
                row = ParsedQuoteModel(document_id=document_id)
                session.add(row)
            row.data = data.to_wire()
            row.line_item_count = len(data.line_items)
        logger.debug(f"Cached {len(data.line_items)} line items for {document_id}")


async def save_report(session: AsyncSession, report: ComplianceReport) -> ComplianceReportModel:
    """Persist a report snapshot (caller commits)."""
    row = ComplianceReportModel(
        id=report.id,
        project_id=report.project_id,
        created_at=report.created_at,
        total_items_checked=report.total_items_checked,
        total_issues=report.total_issues,
        compliance_score=report.compliance_score,
        report=report.to_wire(),
    )
    session.add(row)
    await session.flush()
    return row


async def list_reports(
    session: AsyncSession, project_id: str, limit: int = 10
) -> list[ComplianceReport]:
    """Most recent report snapshots for a project, newest first."""
    result = await session.execute(
        select(ComplianceReportModel)
        .where(ComplianceReportModel.project_id == project_id)
        .order_by(ComplianceReportModel.created_at.desc())
        .limit(limit)
    )
    return [ComplianceReport.model_validate(row.report) for row in result.scalars()]
