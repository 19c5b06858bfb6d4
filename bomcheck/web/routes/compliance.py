"""Compliance check API routes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from bomcheck.compliance.engine import ComplianceEngine, parse_check_request
from bomcheck.db.connection import get_session
from bomcheck.db.quote_cache import list_reports, save_report
from bomcheck.exceptions import ConfigurationError, InputError
from bomcheck.web.dependencies import get_compliance_engine
from bomcheck.web.routes.errors import error_response, internal_error

logger = structlog.get_logger()

router = APIRouter(tags=["compliance"])


@router.post("/api/compliance/check")
async def check_compliance(
    request: Request,
    engine: ComplianceEngine = Depends(get_compliance_engine),
):
    """Run a BOM compliance check against the project's vendor quotes."""
    try:
        payload = await request.json()
    except ValueError:
        return error_response(status.HTTP_400_BAD_REQUEST, "Request body must be valid JSON")

    try:
        check = parse_check_request(payload)
        result = await engine.run(check)
    except InputError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e), e.details)
    except ConfigurationError as e:
        logger.error("compliance_check_misconfigured", error=str(e))
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    except Exception as e:
        logger.exception("compliance_check_failed")
        return internal_error(e)

    if check.persist:
        try:
            async with get_session() as session:
                await save_report(session, result.report)
        except Exception as e:
            logger.warning("report_persist_failed", report_id=result.report.id, error=str(e))

    logger.info(
        "compliance_check_completed",
        project_id=check.project_id,
        total_issues=result.report.total_issues,
        documents_parsed=result.report.documents_parsed,
    )
    return JSONResponse(content=result.to_wire())


@router.get("/api/compliance/reports/{project_id}")
async def get_reports(project_id: str, limit: int = Query(default=10, ge=1, le=100)):
    """Latest persisted compliance reports for a project, newest first."""
    try:
        async with get_session() as session:
            reports = await list_reports(session, project_id, limit=limit)
    except Exception as e:
        logger.exception("report_list_failed", project_id=project_id)
        return internal_error(e)

    return {"projectId": project_id, "reports": [r.to_wire() for r in reports]}
