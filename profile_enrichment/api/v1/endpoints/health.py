"""Health check API endpoints."""

from typing import Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from profile_enrichment.core.config import settings
from profile_enrichment.core.database import db_client
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="healthy, or degraded when the database is unreachable")
    version: str = Field(..., description="Running application version")
    service: str = Field(..., description="Service name")
    database: str = Field(..., description="Database connectivity status")
    database_latency_ms: Optional[float] = Field(None, description="Round trip of a SELECT 1")
    integrations: Dict[str, bool] = Field(
        default_factory=dict,
        description="Whether text generation and each downstream endpoint is configured",
    )


def _integrations() -> Dict[str, bool]:
    return {
        "text_generation": bool(settings.llm.active_api_key),
        "skills_engine": bool(settings.services.skills_engine_url),
        "approval_queue": bool(settings.services.approval_queue_url),
    }


@router.get(
    "/",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check endpoint",
    description="Database connectivity plus which integrations are configured",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    db_health = await db_client.health_check()
    healthy = db_health["status"] == "healthy"
    if not healthy:
        LOGGER.warning("Health check reports degraded database", extra={"database": db_health})

    # Missing integrations degrade individual enrichment steps, not the service
    return HealthCheckResponse(
        status="healthy" if healthy else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        database=db_health["status"],
        database_latency_ms=db_health.get("latency_ms"),
        integrations=_integrations(),
    )
