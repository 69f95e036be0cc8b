"""Health check endpoints."""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from bzr_portal.api.deps import get_document_queue
from bzr_portal.core.database import get_async_session
from bzr_portal.services.document_queue import DocumentQueue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": _timestamp(),
    }


@router.get("/ready")
async def readiness_check(queue: DocumentQueue = Depends(get_document_queue)):
    """Database reachable and upload worker running."""
    checks = {"queue": "running" if queue.is_running else "stopped"}
    try:
        async with get_async_session() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.warning(f"Readiness check: database unavailable: {e}")
        checks["database"] = "unavailable"

    ready = checks["database"] == "ok" and queue.is_running
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not_ready",
            "checks": checks,
            "timestamp": _timestamp(),
        },
    )


@router.get("/live")
async def liveness_check():
    """Liveness check endpoint."""
    return {
        "status": "alive",
        "timestamp": _timestamp(),
    }
