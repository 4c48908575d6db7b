"""
Health check endpoints for monitoring.

Endpoints:
- /health: Basic liveness check (fast, no remote calls)
- /health/live: Simple alive check
"""

from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends

from ..core.config import Settings, get_settings
from ..schemas.common import HealthResponse


router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Returns the health status of the API and its configuration.",
)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Health check endpoint for monitoring systems.

    Never calls VICIdial; reports ``degraded`` when the VICIdial connection
    is not configured, since every proxy route would fail. The dialer
    database is optional and only reported.
    """
    configured = settings.vicidial_configured

    return HealthResponse(
        status="healthy" if configured else "degraded",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc),
        vicidial="configured" if configured else "not_configured",
        vicidial_db="configured" if settings.vicidial_db_configured else "not_configured",
        environment=settings.environment,
    )


@router.get("/health/live", summary="Liveness Check")
async def liveness_check() -> Dict[str, str]:
    return {"status": "alive"}
