"""API request and response schemas."""

from .auth import LoginRequest, SessionResponse
from .errors import APIError, ErrorCode
from .health import HealthResponse, HealthStatus
from .tenants import (
    DomainCreateRequest,
    DomainResponse,
    ImpersonateRequest,
    IssuedTokenResponse,
    PasswordResetRequest,
    TenantListResponse,
    TenantResponse,
)

__all__ = [
    "APIError",
    "DomainCreateRequest",
    "DomainResponse",
    "ErrorCode",
    "HealthResponse",
    "HealthStatus",
    "ImpersonateRequest",
    "IssuedTokenResponse",
    "LoginRequest",
    "PasswordResetRequest",
    "SessionResponse",
    "TenantListResponse",
    "TenantResponse",
]
