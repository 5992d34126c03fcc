"""Error response schemas for API."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"

    # Tenancy
    NOT_FOUND = "not_found"
    TENANT_NOT_FOUND = "tenant_not_found"
    IMPERSONATION_DISABLED = "impersonation_disabled"

    # Impersonation tokens (shown on the login page)
    TOKEN_NOT_FOUND = "token_not_found"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_ALREADY_USED = "token_already_used"

    # Request errors
    VALIDATION_ERROR = "validation_error"

    # System errors
    INTERNAL_ERROR = "internal_error"


class APIError(BaseModel):
    """Standardized API error response format."""

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")
    request_id: str = Field(..., description="Request ID for tracing")
    timestamp: datetime = Field(..., description="When the error occurred")

    model_config = {"json_schema_extra": {"example": {
        "error_code": "token_expired",
        "message": "Impersonation token has expired",
        "details": None,
        "request_id": "5b0b8c3e-9a52-4f7e-8d3e-1c2f0e7a9b11",
        "timestamp": "2026-01-30T12:00:00Z",
    }}}
