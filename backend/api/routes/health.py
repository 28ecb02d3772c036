"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from shared.config import get_settings as get_shared_settings
from ..config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    database: str
    token_validation: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=get_shared_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """
    Readiness check endpoint.

    Reports whether the Supabase connection and the JWT secret used to
    validate bridged sessions are configured.
    """
    shared = get_shared_settings()
    database = "configured" if shared.supabase_url and shared.supabase_service_role_key else "missing"
    tokens = "configured" if get_settings().supabase_jwt_secret else "missing"
    ready = database == "configured" and tokens == "configured"
    return ReadinessResponse(
        status="ready" if ready else "degraded",
        database=database,
        token_validation=tokens,
    )
