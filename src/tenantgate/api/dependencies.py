"""FastAPI dependencies for API endpoints."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from tenantgate.config.settings import Settings
from tenantgate.core.auth import AuthenticationGate
from tenantgate.core.context import TenantContext, get_current_context
from tenantgate.core.exceptions import (
    NotAuthenticatedError,
    PanelAccessDeniedError,
    UnknownDomainError,
)
from tenantgate.core.impersonation import ImpersonationService
from tenantgate.core.resolver import DomainResolver
from tenantgate.core.sessions import SessionManager
from tenantgate.core.store import TenancyStore
from tenantgate.core.tenant import TenantService
from tenantgate.core.types import AuthSession, CentralAdmin
from tenantgate.security.config import SecurityConfig


@dataclass
class Services:
    """Collaborators shared by all requests of one application."""

    settings: Settings
    security: SecurityConfig
    store: TenancyStore
    resolver: DomainResolver
    sessions: SessionManager
    gate: AuthenticationGate
    impersonation: ImpersonationService
    tenants: TenantService


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


async def get_tenant_context() -> TenantContext:
    """Get the context activated by TenantResolutionMiddleware.

    Raises:
        ContextNotSetError: If the middleware did not run for this path
    """
    return get_current_context()


async def require_central_context(ctx: Annotated[TenantContext, Depends(get_tenant_context)]) -> TenantContext:
    """Central routes do not exist on tenant hosts."""
    if not ctx.is_central:
        raise UnknownDomainError(ctx.host or "")
    return ctx


async def require_tenant_context(ctx: Annotated[TenantContext, Depends(get_tenant_context)]) -> TenantContext:
    """Tenant routes do not exist on the central host."""
    if ctx.is_central:
        raise UnknownDomainError(ctx.host or "")
    return ctx


CentralContext = Annotated[TenantContext, Depends(require_central_context)]
TenantHostContext = Annotated[TenantContext, Depends(require_tenant_context)]


def get_session_id(request: Request, services: ServicesDep) -> str | None:
    """The session id presented in the session cookie, if any."""
    return request.cookies.get(services.settings.session_cookie.name)


SessionIdDep = Annotated[str | None, Depends(get_session_id)]


def get_client_ip(request: Request, services: ServicesDep) -> str | None:
    """Client address, honoring X-Forwarded-For only from trusted proxies."""
    direct = request.client.host if request.client else None
    security = services.security
    if security.trust_forwarded_for and direct in security.trusted_proxies:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
    return direct


async def get_current_session(
    ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    session_id: SessionIdDep,
    services: ServicesDep,
) -> AuthSession:
    """The caller's session in the active context.

    Raises:
        NotAuthenticatedError: If no valid session belongs to this context
    """
    session = await services.gate.current_session(session_id, ctx)
    if session is None:
        raise NotAuthenticatedError()
    return session


CurrentSession = Annotated[AuthSession, Depends(get_current_session)]


async def require_admin(
    ctx: CentralContext,
    session: CurrentSession,
    services: ServicesDep,
) -> CentralAdmin:
    """The central administrator behind the current session.

    Raises:
        NotAuthenticatedError: If the session's account is gone
        PanelAccessDeniedError: If the account may not manage tenants
    """
    account = await services.store.find_account(None, session.email)
    if not isinstance(account, CentralAdmin) or not account.is_active:
        await services.sessions.destroy(session.session_id)
        raise NotAuthenticatedError()
    if not account.can_access_panel(services.settings.admin_panel) or not account.can_manage_tenants():
        raise PanelAccessDeniedError(services.settings.admin_panel)
    return account


AdminDep = Annotated[CentralAdmin, Depends(require_admin)]
