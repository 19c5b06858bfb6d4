"""Health check API routes.

Provides endpoints for monitoring application health and connectivity.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from bomcheck.config import get_config
from bomcheck.db.connection import get_db

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check application health.

    Verifies database connectivity and reports whether the AI service is configured.
    """
    ai = "configured" if get_config().llm.configured else "not configured"
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected", "ai": ai}
    except Exception as e:
        return {
            "status": "error",
            "database": "disconnected",
            "ai": ai,
            "detail": str(e),
        }
