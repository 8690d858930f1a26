"""
Exam Portal - Health Check Endpoints
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

from examportal.infrastructure.database import DatabaseManager

logger = structlog.get_logger(__name__)

router = APIRouter()


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str
    timestamp: str
    version: str
    checks: Dict[str, Any]


async def get_db_manager(request: Request) -> DatabaseManager:
    """Get database manager from app state."""
    return request.app.state.db


@router.get(
    "",
    response_model=HealthStatus,
    summary="Health Check",
    description="Database connectivity and latency",
)
async def health_check(
    request: Request,
    db: DatabaseManager = Depends(get_db_manager),
) -> HealthStatus:
    """Perform health check."""
    start = time.monotonic()
    db_health = await db.health_check()
    db_latency = (time.monotonic() - start) * 1000

    overall_status = "healthy" if db_health["status"] == "healthy" else "degraded"

    return HealthStatus(
        status=overall_status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=request.app.state.settings.app_version,
        checks={"database": {**db_health, "latency_ms": round(db_latency, 2)}},
    )


@router.get(
    "/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness Probe",
)
async def liveness() -> Dict[str, str]:
    """Returns 200 if the application is running."""
    return {"status": "alive"}


@router.get(
    "/ready",
    summary="Readiness Probe",
)
async def readiness(
    db: DatabaseManager = Depends(get_db_manager),
) -> ORJSONResponse:
    """Returns 200 when the database answers, 503 otherwise."""
    db_health = await db.health_check()
    if db_health["status"] != "healthy":
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database"},
        )

    return ORJSONResponse(content={"status": "ready"})
