"""Core services for tenant resolution, impersonation and authentication."""

from .context import (
    TenantContext,
    get_current_context,
    get_current_context_or_none,
    reset_context,
    set_context,
    tenant_context,
    with_tenant,
    with_tenant_async,
)
from .exceptions import (
    AuthenticationError,
    ContextNotSetError,
    ImpersonationDisabledError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    PanelAccessDeniedError,
    TenantNotFoundError,
    TenantValidationError,
    TokenAlreadyUsedError,
    TokenError,
    TokenExpiredError,
    TokenNotFoundError,
    TooManyAttemptsError,
    UnknownDomainError,
)
from .resolver import DomainResolver
from .store import InMemoryTenancyStore, TenancyStore
from .tenant import TenantService

__all__ = [
    # Context
    "TenantContext",
    "get_current_context",
    "get_current_context_or_none",
    "reset_context",
    "set_context",
    "tenant_context",
    "with_tenant",
    "with_tenant_async",
    # Exceptions
    "AuthenticationError",
    "ContextNotSetError",
    "ImpersonationDisabledError",
    "InvalidCredentialsError",
    "NotAuthenticatedError",
    "PanelAccessDeniedError",
    "TenantNotFoundError",
    "TenantValidationError",
    "TokenAlreadyUsedError",
    "TokenError",
    "TokenExpiredError",
    "TokenNotFoundError",
    "TooManyAttemptsError",
    "UnknownDomainError",
    # Resolution
    "DomainResolver",
    # Persistence
    "InMemoryTenancyStore",
    "TenancyStore",
    # Tenants
    "TenantService",
]
