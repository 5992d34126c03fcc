"""Endpoints served on tenant hosts.

These routes only exist inside a resolved tenant context; on the central
host they answer not-found.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import RedirectResponse

from tenantgate.api.cookies import clear_session_cookie, set_session_cookie
from tenantgate.api.dependencies import (
    CurrentSession,
    ServicesDep,
    SessionIdDep,
    TenantHostContext,
    get_client_ip,
)
from tenantgate.api.schemas.auth import LoginRequest, SessionResponse
from tenantgate.core.auth import Credentials

router = APIRouter(tags=["tenant"])


@router.post("/login", response_model=SessionResponse)
async def login(
    body: LoginRequest,
    response: Response,
    ctx: TenantHostContext,
    services: ServicesDep,
    session_id: SessionIdDep,
    client_ip: Annotated[str | None, Depends(get_client_ip)],
) -> SessionResponse:
    """Log in to the tenant panel."""
    session = await services.gate.authenticate(
        Credentials(email=body.email, password=body.password, client_ip=client_ip),
        services.settings.panel,
        ctx,
        previous_session_id=session_id,
    )
    set_session_cookie(response, session, services.settings)
    return SessionResponse.from_session(session)


async def redeem_impersonation(
    ctx: TenantHostContext,
    services: ServicesDep,
    session_id: SessionIdDep,
    token: Annotated[str, Query(min_length=1)],
    email: Annotated[str | None, Query()] = None,
) -> RedirectResponse:
    """Redeem an impersonation token and continue to its redirect path.

    Mounted at ``/{impersonation_login_path}`` by the application factory.
    """
    session = await services.impersonation.redeem(token, ctx, email=email, previous_session_id=session_id)
    record = await services.store.find_token(ctx.tenant_id, token)
    target = record.redirect_path if record else f"/{services.settings.panel}"

    response = RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, session, services.settings)
    return response


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    response: Response,
    ctx: TenantHostContext,
    services: ServicesDep,
    session_id: SessionIdDep,
) -> None:
    await services.gate.logout(session_id)
    clear_session_cookie(response, services.settings)


@router.get("/me", response_model=SessionResponse)
async def me(ctx: TenantHostContext, session: CurrentSession) -> SessionResponse:
    """The session of the caller in this tenant."""
    return SessionResponse.from_session(session)
