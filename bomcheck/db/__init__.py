"""Database layer for bomcheck with async SQLAlchemy."""

from bomcheck.db.connection import close_db, get_session, init_db
from bomcheck.db.models import Base, ComplianceReportModel, ParsedQuoteModel
from bomcheck.db.quote_cache import SqlQuoteCache, list_reports, save_report

__all__ = [
    "Base",
    "ParsedQuoteModel",
    "ComplianceReportModel",
    "SqlQuoteCache",
    "save_report",
    "list_reports",
    "get_session",
    "init_db",
    "close_db",
]
