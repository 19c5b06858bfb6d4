"""SQLAlchemy async database models for bomcheck.

Two tables: the parsed-quote cache (one row per quote document) and
compliance report snapshots.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ParsedQuoteModel(Base):
    """Structured line items extracted from a vendor quote document."""

    __tablename__ = "parsed_quotes"

    document_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)  # ParsedQuoteData wire form
    line_item_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    parsed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ComplianceReportModel(Base):
    """Snapshot of one compliance run."""

    __tablename__ = "compliance_reports"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    project_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    total_items_checked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_issues: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    compliance_score: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    report: Mapped[dict] = mapped_column(JSON, nullable=False)  # ComplianceReport wire form
