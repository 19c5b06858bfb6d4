"""JSON error bodies shared by the API routes: ``{"error": ..., "details": ...}``."""

from __future__ import annotations

from fastapi import status
from fastapi.responses import JSONResponse


def error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    content = {"error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def internal_error(exc: Exception) -> JSONResponse:
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(exc)
    )
