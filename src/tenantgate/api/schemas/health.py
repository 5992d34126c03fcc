"""Health check response schema."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness payload, served on every host before tenant resolution."""

    status: HealthStatus
    version: str
    environment: str
    central_domain: str = Field(..., description="Host that serves the central admin context")
    timestamp: datetime
