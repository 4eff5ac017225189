"""
Monitoring Routes

GET /health → liveness plus plugin readiness counts.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pagebuilder.config import settings
from pagebuilder.runtime import PageBuilderRuntime, get_runtime

router = APIRouter(tags=["Monitoring"])

APP_START_TIME = time.time()


class HealthStatus(BaseModel):
    """Health check response model."""

    status: str
    timestamp: str
    version: str
    uptime_seconds: float
    plugins: dict[str, int]


@router.get("/health", response_model=HealthStatus)
async def health_check(runtime: PageBuilderRuntime = Depends(get_runtime)) -> HealthStatus:
    """
    Liveness probe.

    Reports "degraded" when a plugin failed or was skipped; the preview
    still works without it.
    """
    counts: dict[str, int] = {}
    for entry in runtime.plugins.status().values():
        counts[entry["status"]] = counts.get(entry["status"], 0) + 1

    degraded = counts.get("failed", 0) or counts.get("skipped", 0)
    return HealthStatus(
        status="degraded" if degraded else "healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
        uptime_seconds=round(time.time() - APP_START_TIME, 2),
        plugins=counts,
    )
