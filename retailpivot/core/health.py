"""Health check endpoints."""

from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel, Field

from retailpivot.core.config import get_settings
from retailpivot.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: Literal["ok", "degraded", "unhealthy"]


class ReadinessResponse(HealthResponse):
    """Readiness response with the engine limits a client must respect."""

    max_records: int = Field(..., description="Largest record batch accepted per request.")
    max_nodes: int = Field(..., description="Largest pivot tree built per request.")
    strict_mode: bool = Field(
        ...,
        description="True when malformed rules and non-numeric measures are rejected "
        "instead of being ignored or coerced to 0.",
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic liveness check."""
    logger.debug("health.check_started")
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Readiness check reporting the active pivot engine limits.

    The engine has no external dependencies; it is ready as soon as
    settings load.
    """
    settings = get_settings()
    logger.debug("health.readiness_check_started")
    return ReadinessResponse(
        status="ok",
        max_records=settings.pivot_max_records,
        max_nodes=settings.pivot_max_nodes,
        strict_mode=settings.pivot_strict_mode,
    )
