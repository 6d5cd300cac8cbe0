# Hey future me - these are the container probes, mounted at /health (no /api prefix).
#
# - /health        → full status (database + pool stats + uptime)
# - /health/live   → process is up, no dependency checks
# - /health/ready  → 503 while the database can't be reached
"""Health check endpoints for Docker/Kubernetes probes."""

import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from songstock import __version__

router = APIRouter(prefix="/health", tags=["Health"])


class HealthStatus(BaseModel):
    """Overall health status response."""

    status: str = Field(description="healthy or unhealthy")
    timestamp: str = Field(description="ISO timestamp of health check")
    version: str = Field(default=__version__, description="Application version")
    uptime_seconds: float | None = Field(default=None, description="Seconds since app started")
    checks: dict[str, Any] = Field(default_factory=dict, description="Component checks")


class LivenessStatus(BaseModel):
    status: str
    timestamp: str


class ReadinessStatus(BaseModel):
    status: str = Field(description="ready or not_ready")
    timestamp: str
    database: bool


async def _database_ok(request: Request) -> bool:
    db = getattr(request.app.state, "db", None)
    return db is not None and await db.health_check()


@router.get("/live", response_model=LivenessStatus)
async def liveness_probe() -> LivenessStatus:
    return LivenessStatus(status="alive", timestamp=datetime.now(UTC).isoformat())


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_probe(request: Request) -> JSONResponse:
    db_ok = await _database_ok(request)
    response = ReadinessStatus(
        status="ready" if db_ok else "not_ready",
        timestamp=datetime.now(UTC).isoformat(),
        database=db_ok,
    )
    status_code = status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=status_code)


@router.get("", response_model=HealthStatus)
async def health_check(request: Request) -> JSONResponse:
    """Comprehensive health check; 503 when the database is down."""
    db_ok = await _database_ok(request)
    checks: dict[str, Any] = {"database": {"healthy": db_ok}}
    db = getattr(request.app.state, "db", None)
    if db is not None:
        checks["database"]["pool"] = db.get_pool_stats()

    started_at = getattr(request.app.state, "started_at", None)
    response = HealthStatus(
        status="healthy" if db_ok else "unhealthy",
        timestamp=datetime.now(UTC).isoformat(),
        uptime_seconds=round(time.monotonic() - started_at, 3) if started_at else None,
        checks=checks,
    )
    status_code = status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=status_code)
