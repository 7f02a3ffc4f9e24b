"""Health & Readiness Probes — liveness with auth snapshot, readiness with a database check.

Invariants:
    - GET /health always returns 200 while the process is up (liveness)
    - GET /health/ready returns 503 if the database is unreachable (readiness)
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from restaurant_api.context import AppContext, get_app_context

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(request: Request, context: AppContext = Depends(get_app_context)):
    """Liveness probe plus database and auth/session status."""
    db_ok = await context.db.health_check()
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": context.settings.environment.value,
        "auth": context.auth.label,
        "database": "connected" if db_ok else "unavailable",
        "uptime_seconds": round(
            (datetime.now(timezone.utc) - context.started_at).total_seconds(), 1,
        ),
        "session": await context.auth.snapshot(request),
    }


@router.get("/ready")
async def readiness_check(context: AppContext = Depends(get_app_context)):
    """Readiness probe — includes database connectivity."""
    if not await context.db.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {"status": "ready", "checks": {"database": "healthy"}}
