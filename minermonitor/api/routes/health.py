"""
Health check endpoints
"""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import structlog

logger = structlog.get_logger(__name__)
router = APIRouter()

@router.get("/healthz", response_class=PlainTextResponse)
def health_check():
    """Liveness probe"""
    return "ok"

@router.get("/healthz/detailed")
def detailed_health_check(request: Request):
    """Health check with store size and persistence connectivity"""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        db_status = "disabled"
    else:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            db_status = "connected"
        except SQLAlchemyError as e:
            logger.error("Database health check failed", error=str(e))
            db_status = "disconnected"

    return {
        "status": "unhealthy" if db_status == "disconnected" else "healthy",
        "devices": len(request.app.state.store),
        "persistence": db_status,
        "service": "MinerMonitor API",
    }
