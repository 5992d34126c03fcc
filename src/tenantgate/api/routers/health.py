"""Health check endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter

from tenantgate import __version__
from tenantgate.api.dependencies import ServicesDep
from tenantgate.api.schemas.health import HealthResponse, HealthStatus

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Basic health check",
    description="Returns liveness status on any host. No authentication required.",
)
async def health_check(services: ServicesDep) -> HealthResponse:
    settings = services.settings
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=__version__,
        environment=settings.ENVIRONMENT,
        central_domain=settings.central_domain,
        timestamp=datetime.now(UTC),
    )
