"""
Health Check Endpoints

Provides health and liveness checks for orchestration systems.
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter
from pydantic import BaseModel

from profit_insights.config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    The service has no hard dependencies; a missing API key only means
    every analysis runs on its deterministic fallbacks.
    """
    settings = get_settings()
    ai_enabled = settings.ai.enabled

    return HealthResponse(
        status="healthy" if ai_enabled else "degraded",
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.utcnow(),
        checks={
            "ai_provider": {
                "status": "configured" if ai_enabled else "not_configured",
                "model": settings.ai.default_model,
            },
        },
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 if the application is running."""
    return {"status": "alive"}
