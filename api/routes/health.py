"""Health check API routes.

- GET /health - Basic liveness check
- GET /health/ready - Readiness check (DB connectivity)
"""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api.routes.v1.dependencies import SessionDep
from clinicdesk.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict:
    """Liveness check. No authentication required."""
    return {"status": "ok"}


@router.get("/ready")
async def ready(session: SessionDep) -> dict:
    """Readiness check against the database.

    Raises:
        HTTPException 503: Database unavailable
    """
    try:
        session.exec(text("SELECT 1")).first()
    except SQLAlchemyError as e:
        logger.warning("database_check_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not ready: database unavailable",
        )
    return {"status": "ok", "database": True}
