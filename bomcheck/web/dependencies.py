"""Shared dependencies for bomcheck web routes.

Route handlers receive their service objects through FastAPI's Depends(),
so tests can swap them with ``app.dependency_overrides``.
"""

from __future__ import annotations

from bomcheck.analysis.bom_text import BOMAnalyzer
from bomcheck.compliance.engine import ComplianceEngine
from bomcheck.config import get_config
from bomcheck.db.quote_cache import SqlQuoteCache

# Global singletons
_engine: ComplianceEngine | None = None
_analyzer: BOMAnalyzer | None = None


def get_compliance_engine() -> ComplianceEngine:
    """Compliance engine wired to HTTP download, pypdf, OpenAI and the SQL quote cache."""
    global _engine
    if _engine is None:
        _engine = ComplianceEngine.from_config(get_config(), cache=SqlQuoteCache())
    return _engine


def get_bom_analyzer() -> BOMAnalyzer:
    global _analyzer
    if _analyzer is None:
        _analyzer = BOMAnalyzer(get_config().llm)
    return _analyzer


def reset_dependencies() -> None:
    """Drop cached singletons (used after config changes and in tests)."""
    global _engine, _analyzer
    _engine = None
    _analyzer = None
