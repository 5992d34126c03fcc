"""Admin impersonation of tenant accounts.

An administrator in the central context issues a short-lived token bound to
one tenant and one account. The admin UI sends the browser to the tenant's
login URL carrying the token; redeeming it on the tenant's domain consumes
the token exactly once and starts a session for the target account.

Tokens are persisted in the owning tenant's namespace, so a token can only
ever be found by a request that resolved to that tenant.
"""

import secrets
from datetime import timedelta
from urllib.parse import urlencode

import structlog

from tenantgate.config.settings import Settings, get_settings
from tenantgate.core.context import TenantContext, get_current_context
from tenantgate.core.exceptions import (
    ImpersonationDisabledError,
    PanelAccessDeniedError,
    TenantNotFoundError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    TokenNotFoundError,
)
from tenantgate.core.logging import LogContext
from tenantgate.core.resolver import DomainResolver
from tenantgate.core.sessions import SessionManager
from tenantgate.core.store import TenancyStore
from tenantgate.core.types import (
    AuthSession,
    CentralAdmin,
    ImpersonationToken,
    IssuedToken,
    utcnow,
)

logger = structlog.get_logger("tenantgate.impersonation")

TOKEN_BYTES = 32


class ImpersonationService:
    """Issues and redeems single-use impersonation tokens."""

    def __init__(
        self,
        store: TenancyStore,
        sessions: SessionManager,
        resolver: DomainResolver,
        settings: Settings | None = None,
    ):
        self.store = store
        self.sessions = sessions
        self.resolver = resolver
        self.settings = settings or get_settings()

    async def issue(
        self,
        admin: CentralAdmin,
        tenant_id: str,
        target_user: str | None = None,
        redirect_path: str | None = None,
        panel: str | None = None,
        ttl: int | None = None,
    ) -> IssuedToken:
        """Mint a token letting ``admin`` enter ``tenant_id`` as ``target_user``.

        Args:
            admin: The central administrator asking to impersonate
            tenant_id: Tenant to enter
            target_user: Email of the tenant account (defaults to the tenant's email)
            redirect_path: Where to send the browser after redemption
            panel: Panel the resulting session is opened for
            ttl: Token lifetime in seconds

        Raises:
            ImpersonationDisabledError: Impersonation is off, the admin lacks the
                capability, the call is not made from the central context, or the
                target account cannot be entered
            TenantNotFoundError: The tenant does not exist or is deleted
        """
        if not self.settings.allow_impersonate:
            raise ImpersonationDisabledError()
        if not get_current_context().is_central:
            raise ImpersonationDisabledError("Impersonation can only be started from the central domain")
        if not isinstance(admin, CentralAdmin) or not admin.can_impersonate():
            logger.warning("impersonation_denied", admin_id=str(admin.id), target_tenant=tenant_id)
            raise ImpersonationDisabledError("Not allowed to impersonate")

        tenant = await self.store.find_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)

        domains = await self.store.find_domains(tenant.id)
        if not domains:
            raise ImpersonationDisabledError(f"Tenant {tenant.id} has no domain")

        email = (target_user or tenant.email).strip().lower()
        account = await self.store.find_account(tenant.id, email)
        if account is None or not account.is_active:
            raise ImpersonationDisabledError("Target account cannot be impersonated")

        panel = panel or self.settings.panel
        if not account.can_access_panel(panel):
            raise ImpersonationDisabledError(f"Target account cannot open the {panel} panel")

        redirect_path = redirect_path or self.settings.impersonation_redirect_path
        if not redirect_path.startswith("/") or redirect_path.startswith("//"):
            raise ValueError(f"redirect_path must be a local absolute path: {redirect_path!r}")

        ttl = ttl if ttl is not None else self.settings.impersonation_ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        now = utcnow()
        await self.store.delete_expired_tokens(tenant.id, now)
        record = await self.store.create_token(
            ImpersonationToken(
                token=secrets.token_urlsafe(TOKEN_BYTES),
                tenant_id=tenant.id,
                user_email=email,
                redirect_path=redirect_path,
                panel=panel,
                impersonator_id=admin.id,
                created_at=now,
                expires_at=now + timedelta(seconds=ttl),
            )
        )

        query = urlencode({"token": record.token, "email": email})
        redirect_url = f"{self.resolver.build_url(domains[0].domain, self.settings.impersonation_login_path)}?{query}"

        logger.info(
            "impersonation_token_issued",
            admin_id=str(admin.id),
            target_tenant=tenant.id,
            target_user=email,
            expires_at=record.expires_at.isoformat(),
        )
        return IssuedToken(
            token=record.token,
            tenant_id=tenant.id,
            redirect_url=redirect_url,
            expires_at=record.expires_at,
        )

    async def redeem(
        self,
        token: str,
        tenant_context: TenantContext,
        email: str | None = None,
        previous_session_id: str | None = None,
    ) -> AuthSession:
        """Consume ``token`` and start a session for its target account.

        Checks run in a fixed order: existence in this tenant, email binding,
        expiry, prior use.

        Raises:
            TokenNotFoundError: Unknown in this tenant, email mismatch, or the
                target account no longer exists
            TokenExpiredError: Past its expiry
            TokenAlreadyUsedError: Already consumed, including by a concurrent redeem
            PanelAccessDeniedError: The target account may not open the token's panel
        """
        if tenant_context.is_central or not token:
            raise TokenNotFoundError()

        tenant_id = tenant_context.tenant_id
        record = await self.store.find_token(tenant_id, token)
        if record is None:
            logger.warning("impersonation_token_not_found")
            raise TokenNotFoundError()

        if email is not None and email.strip().lower() != record.user_email:
            logger.warning("impersonation_token_email_mismatch")
            raise TokenNotFoundError()

        if record.is_expired():
            logger.info("impersonation_token_expired", expired_at=record.expires_at.isoformat())
            raise TokenExpiredError(record.expires_at)

        if record.consumed:
            raise TokenAlreadyUsedError()

        account = await self.store.find_account(tenant_id, record.user_email)
        if account is None or not account.is_active:
            raise TokenNotFoundError()
        if not account.can_access_panel(record.panel):
            logger.warning("impersonation_panel_denied", panel=record.panel)
            raise PanelAccessDeniedError(record.panel)

        if not await self.store.update_token_consumed(tenant_id, token, expected_consumed=False):
            logger.warning("impersonation_token_race_lost")
            raise TokenAlreadyUsedError()

        impersonator = str(record.impersonator_id) if record.impersonator_id else None
        with LogContext(impersonator_id=impersonator, panel=record.panel):
            session = await self.sessions.establish(
                tenant_context,
                account,
                record.panel,
                previous_session_id=previous_session_id,
                impersonator_id=record.impersonator_id,
            )
            logger.info("impersonation_token_redeemed", target_user=record.user_email)
        return session
