"""Tenant management endpoints served on the central host.

Everything except login requires a session of a central administrator with
the tenant-management capability.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from tenantgate.api.cookies import clear_session_cookie, set_session_cookie
from tenantgate.api.dependencies import (
    AdminDep,
    CentralContext,
    ServicesDep,
    SessionIdDep,
    get_client_ip,
)
from tenantgate.api.schemas.auth import LoginRequest, SessionResponse
from tenantgate.api.schemas.tenants import (
    DomainCreateRequest,
    DomainResponse,
    ImpersonateRequest,
    IssuedTokenResponse,
    PasswordResetRequest,
    TenantListResponse,
    TenantResponse,
    domain_response,
)
from tenantgate.core.auth import Credentials
from tenantgate.core.types import TenantRecord
from tenantgate.core.validation import TenantCreateData, TenantUpdateData

router = APIRouter(prefix="/admin", tags=["central"])


async def _tenant_response(services: ServicesDep, tenant: TenantRecord) -> TenantResponse:
    return TenantResponse.from_record(tenant, await services.tenants.tenant_url(tenant.id))


@router.post("/login", response_model=SessionResponse)
async def admin_login(
    body: LoginRequest,
    response: Response,
    ctx: CentralContext,
    services: ServicesDep,
    session_id: SessionIdDep,
    client_ip: Annotated[str | None, Depends(get_client_ip)],
) -> SessionResponse:
    """Log in to the admin panel."""
    session = await services.gate.authenticate(
        Credentials(email=body.email, password=body.password, client_ip=client_ip),
        services.settings.admin_panel,
        ctx,
        previous_session_id=session_id,
    )
    set_session_cookie(response, session, services.settings)
    return SessionResponse.from_session(session)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def admin_logout(
    response: Response,
    ctx: CentralContext,
    services: ServicesDep,
    session_id: SessionIdDep,
) -> None:
    await services.gate.logout(session_id)
    clear_session_cookie(response, services.settings)


@router.get("/tenants", response_model=TenantListResponse)
async def list_tenants(
    admin: AdminDep,
    services: ServicesDep,
    active: Annotated[bool | None, Query()] = None,
    include_deleted: Annotated[bool, Query()] = False,
) -> TenantListResponse:
    """List tenants, newest first."""
    tenants = await services.tenants.list_tenants(active=active, include_deleted=include_deleted)
    items = [await _tenant_response(services, t) for t in tenants]
    return TenantListResponse(items=items, total=len(items))


@router.post("/tenants", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(body: TenantCreateData, admin: AdminDep, services: ServicesDep) -> TenantResponse:
    tenant = await services.tenants.create_tenant(body)
    return await _tenant_response(services, tenant)


@router.get("/tenants/{tenant_id}", response_model=TenantResponse)
async def get_tenant(tenant_id: str, admin: AdminDep, services: ServicesDep) -> TenantResponse:
    tenant = await services.tenants.get_tenant(tenant_id)
    return await _tenant_response(services, tenant)


@router.patch("/tenants/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: str,
    body: TenantUpdateData,
    admin: AdminDep,
    services: ServicesDep,
) -> TenantResponse:
    tenant = await services.tenants.update_tenant(tenant_id, body)
    return await _tenant_response(services, tenant)


@router.delete("/tenants/{tenant_id}", response_model=TenantResponse)
async def delete_tenant(tenant_id: str, admin: AdminDep, services: ServicesDep) -> TenantResponse:
    """Soft-delete a tenant. Its domains stop resolving until it is restored."""
    tenant = await services.tenants.delete_tenant(tenant_id)
    return await _tenant_response(services, tenant)


@router.post("/tenants/{tenant_id}/restore", response_model=TenantResponse)
async def restore_tenant(tenant_id: str, admin: AdminDep, services: ServicesDep) -> TenantResponse:
    tenant = await services.tenants.restore_tenant(tenant_id)
    return await _tenant_response(services, tenant)


@router.post(
    "/tenants/{tenant_id}/domains",
    response_model=DomainResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_domain(
    tenant_id: str,
    body: DomainCreateRequest,
    admin: AdminDep,
    services: ServicesDep,
) -> DomainResponse:
    record = await services.tenants.add_domain(tenant_id, body.domain)
    return domain_response(record, services.resolver.build_url(record.domain))


@router.post("/tenants/{tenant_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    tenant_id: str,
    body: PasswordResetRequest,
    admin: AdminDep,
    services: ServicesDep,
) -> None:
    """Set a new password for the tenant's owner account."""
    await services.tenants.reset_password(tenant_id, body.password, body.password_confirmation)


@router.post("/tenants/{tenant_id}/impersonate", response_model=IssuedTokenResponse)
async def impersonate(
    tenant_id: str,
    admin: AdminDep,
    services: ServicesDep,
    body: ImpersonateRequest | None = None,
) -> IssuedTokenResponse:
    """Issue an impersonation token and return the URL the browser should open."""
    body = body or ImpersonateRequest()
    issued = await services.impersonation.issue(
        admin,
        tenant_id,
        target_user=body.target_user,
        redirect_path=body.redirect_path,
        panel=body.panel,
    )
    return IssuedTokenResponse(
        tenant_id=issued.tenant_id,
        redirect_url=issued.redirect_url,
        expires_at=issued.expires_at,
    )
