"""Authentication gate for panel logins.

The gate answers one question per attempt: may these credentials open this
panel in the active context? Every answer that is not a session comes back
as one of the AuthenticationError subclasses, and those carry the same
message whether the account is missing, inactive, wrongly authenticated or
not allowed on the panel.
"""

from dataclasses import dataclass

import structlog
from pydantic import BaseModel, ConfigDict, Field

from tenantgate.config.settings import Settings, get_settings
from tenantgate.core.context import TenantContext
from tenantgate.core.exceptions import (
    AuthenticationError,
    InvalidCredentialsError,
    PanelAccessDeniedError,
    TooManyAttemptsError,
)
from tenantgate.core.passwords import burn_verification, verify_password
from tenantgate.core.sessions import SessionManager
from tenantgate.core.store import TenancyStore
from tenantgate.core.types import AuthSession
from tenantgate.security.rate_limiter import RateLimiter

logger = structlog.get_logger("tenantgate.auth")


class Credentials(BaseModel):
    """A login attempt."""

    model_config = ConfigDict(frozen=True)

    email: str
    password: str = Field(repr=False)
    client_ip: str | None = None


@dataclass
class LoginOutcome:
    """Result-style wrapper around AuthenticationGate.authenticate().

    Attributes:
        session: The new session on success
        error: The failure on rejection
        retry_after: Seconds to wait when throttled
    """

    session: AuthSession | None = None
    error: AuthenticationError | None = None
    retry_after: int | None = None

    @property
    def ok(self) -> bool:
        return self.session is not None


class AuthenticationGate:
    """Verifies credentials and opens sessions in the active context."""

    def __init__(
        self,
        store: TenancyStore,
        sessions: SessionManager,
        rate_limiter: RateLimiter,
        settings: Settings | None = None,
    ):
        self.store = store
        self.sessions = sessions
        self.rate_limiter = rate_limiter
        self.settings = settings or get_settings()

    async def authenticate(
        self,
        credentials: Credentials,
        panel: str,
        context: TenantContext,
        previous_session_id: str | None = None,
    ) -> AuthSession:
        """Log in to ``panel`` inside ``context``.

        Every attempt counts against the throttle for this panel, email and
        client address; a successful login clears it.

        Raises:
            TooManyAttemptsError: Too many attempts in the current window
            InvalidCredentialsError: Unknown account, wrong password or inactive account
            PanelAccessDeniedError: Valid credentials that may not open ``panel``
        """
        email = credentials.email.strip().lower()
        try:
            await self.rate_limiter.hit_or_raise(panel, email, credentials.client_ip)
        except TooManyAttemptsError as exc:
            logger.warning("login_throttled", panel=panel, retry_after=exc.retry_after)
            raise

        account = await self.store.find_account(context.tenant_id, email)
        if account is None:
            burn_verification(credentials.password, self.settings.bcrypt_rounds)
            logger.info("login_failed", panel=panel, reason="unknown_account")
            raise InvalidCredentialsError()

        if not verify_password(credentials.password, account.password_hash):
            logger.info("login_failed", panel=panel, reason="bad_password")
            raise InvalidCredentialsError()

        if not account.is_active:
            logger.info("login_failed", panel=panel, reason="inactive_account")
            raise InvalidCredentialsError()

        if not account.can_access_panel(panel):
            if previous_session_id:
                await self.sessions.destroy(previous_session_id)
            logger.warning("login_panel_denied", panel=panel, user_id=str(account.id))
            raise PanelAccessDeniedError(panel)

        await self.rate_limiter.clear(panel, email, credentials.client_ip)
        session = await self.sessions.establish(
            context,
            account,
            panel,
            previous_session_id=previous_session_id,
        )
        logger.info("login_succeeded", panel=panel, user_id=str(account.id))
        return session

    async def try_authenticate(
        self,
        credentials: Credentials,
        panel: str,
        context: TenantContext,
        previous_session_id: str | None = None,
    ) -> LoginOutcome:
        """Like authenticate() but reports failures instead of raising them."""
        try:
            session = await self.authenticate(credentials, panel, context, previous_session_id)
        except TooManyAttemptsError as exc:
            return LoginOutcome(error=exc, retry_after=exc.retry_after)
        except AuthenticationError as exc:
            return LoginOutcome(error=exc)
        return LoginOutcome(session=session)

    async def current_session(self, session_id: str | None, context: TenantContext) -> AuthSession | None:
        """Return the caller's session if it belongs to ``context``."""
        if not session_id:
            return None
        return await self.sessions.get(session_id, context)

    async def logout(self, session_id: str | None) -> bool:
        if not session_id:
            return False
        destroyed = await self.sessions.destroy(session_id)
        if destroyed:
            logger.info("logout")
        return destroyed
