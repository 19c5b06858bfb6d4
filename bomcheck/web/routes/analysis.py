"""BOM text analysis API route."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from bomcheck.analysis.bom_text import BOMAnalyzer
from bomcheck.exceptions import InputError
from bomcheck.models import BOMAnalysisRequest
from bomcheck.web.dependencies import get_bom_analyzer
from bomcheck.web.routes.errors import error_response, internal_error

logger = structlog.get_logger()

router = APIRouter(tags=["analysis"])


@router.post("/api/bom/analyze")
async def analyze_bom(
    request: Request,
    analyzer: BOMAnalyzer = Depends(get_bom_analyzer),
):
    """Extract structured BOM items from pasted text."""
    try:
        payload = await request.json()
        body = BOMAnalysisRequest.model_validate(payload)
    except (ValueError, ValidationError):
        return error_response(status.HTTP_400_BAD_REQUEST, "Text content is required")

    try:
        result = await analyzer.analyze(
            body.text, body.existing_categories, body.existing_makes
        )
    except InputError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e), e.details)
    except Exception as e:
        logger.exception("bom_analysis_failed")
        return internal_error(e)

    return JSONResponse(content=result.to_wire())
