"""Tests for the SQL-backed quote cache and report snapshots."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from bomcheck.compliance.report import assemble_report
from bomcheck.db.models import Base
from bomcheck.db.quote_cache import SqlQuoteCache, list_reports, save_report
from bomcheck.models import ParsedQuoteData


@pytest_asyncio.fixture
async def sessionmaker(tmp_path):
    """Isolated SQLite database with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bomcheck.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def session_provider(sessionmaker):
    @asynccontextmanager
    async def _provider():
        async with sessionmaker() as session:
            yield session
            await session.commit()

    return _provider


class TestSqlQuoteCache:
    async def test_miss_returns_none(self, session_provider):
        cache = SqlQuoteCache(session_provider)
        assert await cache.get("quote-1") is None

    async def test_put_then_get(self, session_provider, servo_line):
        cache = SqlQuoteCache(session_provider)
        data = ParsedQuoteData.model_validate(
            {"documentInfo": {"vendorName": "Acme"}, "lineItems": [servo_line]}
        )

        await cache.put("quote-1", data)
        cached = await cache.get("quote-1")

        assert cached == data

    async def test_put_overwrites(self, session_provider, servo_line):
        cache = SqlQuoteCache(session_provider)
        await cache.put("quote-1", ParsedQuoteData.model_validate({"lineItems": [servo_line]}))
        await cache.put(
            "quote-1",
            ParsedQuoteData.model_validate({"lineItems": [servo_line, servo_line]}),
        )

        cached = await cache.get("quote-1")
        assert len(cached.line_items) == 2


class TestReportSnapshots:
    async def test_list_newest_first(self, sessionmaker):
        base = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
        async with sessionmaker() as session:
            for offset in range(3):
                await save_report(
                    session,
                    assemble_report(
                        "proj-1",
                        10,
                        [],
                        report_id=f"report-{offset}",
                        created_at=base + timedelta(hours=offset),
                    ),
                )
            await save_report(session, assemble_report("proj-2", 1, [], report_id="other"))
            await session.commit()

        async with sessionmaker() as session:
            reports = await list_reports(session, "proj-1", limit=2)

        assert [r.id for r in reports] == ["report-2", "report-1"]
        assert reports[0].compliance_score == 100
