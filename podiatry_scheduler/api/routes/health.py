"""
Health Check Endpoints

Liveness and readiness probes for monitoring and load balancers.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from podiatry_scheduler import __version__
from podiatry_scheduler.config import settings
from podiatry_scheduler.infra.database import check_db_health
from podiatry_scheduler.infra.redis import check_redis_health

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

# Track application start time for uptime calculation
_start_time: Optional[datetime] = None


def set_start_time() -> None:
    """Set application start time. Called once on startup."""
    global _start_time
    _start_time = datetime.now(timezone.utc)


def get_uptime_seconds() -> Optional[float]:
    """Get application uptime in seconds."""
    if _start_time is None:
        return None
    return (datetime.now(timezone.utc) - _start_time).total_seconds()


class HealthResponse(BaseModel):
    """Basic health check response."""
    status: str
    timestamp: datetime
    version: str
    environment: str
    uptime_seconds: Optional[float] = None


class ReadyResponse(BaseModel):
    """Readiness check response with dependency status."""
    status: str
    timestamp: datetime
    checks: dict[str, str]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health() -> HealthResponse:
    """
    Basic health check.

    Always returns 200 if the application is running.
    Use /health/ready for dependency checks.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        environment=settings.app_env,
        uptime_seconds=get_uptime_seconds(),
    )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    summary="Readiness probe",
    responses={
        200: {"description": "All dependencies are ready"},
        503: {"description": "The database is unavailable"},
    },
)
async def ready() -> ReadyResponse:
    """
    Readiness probe.

    The database is required. Redis only reports "degraded": booking locks
    fall back to in-process locks without it.
    """
    checks = {}

    if settings.use_memory_store:
        checks["database"] = "skipped"
        db_ok = True
    else:
        db_ok = await check_db_health()
        checks["database"] = "ok" if db_ok else "failed"
        if not db_ok:
            logger.warning("Readiness check: Database unhealthy")

    redis_ok = await check_redis_health()
    checks["redis"] = "ok" if redis_ok else "degraded"

    response = ReadyResponse(
        status="ready" if db_ok else "not_ready",
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )

    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )

    return response
