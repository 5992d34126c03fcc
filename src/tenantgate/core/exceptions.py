"""Core exceptions for tenant resolution, impersonation and authentication.

Messages of the authentication errors are deliberately identical so that a
caller surfacing them never reveals whether an account exists.
"""

from datetime import datetime

from tenantgate.utils.exceptions import TenantGateError

GENERIC_LOGIN_FAILURE = "These credentials do not match our records."


class ContextNotSetError(TenantGateError):
    """Raised when attempting to access a tenant context that is not set.

    This error indicates a programming error - operations requiring a context
    are being called outside of a tenant_context() block.
    """

    def __init__(self, message: str = "Tenant context is not set"):
        super().__init__(message)


class UnknownDomainError(TenantGateError):
    """Raised when a request host does not map to any active tenant.

    Attributes:
        host: The normalized host that failed to resolve
    """

    def __init__(self, host: str):
        super().__init__(f"Unknown domain: {host}")
        self.host = host

    def __str__(self) -> str:
        return f"UnknownDomainError: {self.args[0]}"


class TenantNotFoundError(TenantGateError):
    """Raised when a tenant does not exist (or is soft-deleted).

    Attributes:
        tenant_id: The identifier of the tenant that was not found
    """

    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id

    def __str__(self) -> str:
        return f"TenantNotFoundError: {self.args[0]}"


class TenantValidationError(TenantGateError):
    """Raised when a tenant payload violates field constraints.

    Attributes:
        errors: Mapping of field name to the list of violated constraints
    """

    def __init__(self, errors: dict[str, list[str]]):
        fields = ", ".join(sorted(errors))
        super().__init__(f"Invalid tenant data: {fields}")
        self.errors = errors

    def __str__(self) -> str:
        return f"TenantValidationError: {self.args[0]}"


class ImpersonationDisabledError(TenantGateError):
    """Raised when impersonation is switched off or the caller may not impersonate.

    Attributes:
        reason: Why the token could not be issued
    """

    def __init__(self, reason: str = "Impersonation is disabled"):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"ImpersonationDisabledError: {self.args[0]}"


class TokenError(TenantGateError):
    """Base class for impersonation token redemption failures."""

    code = "token_invalid"

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.args[0]}"


class TokenNotFoundError(TokenError):
    """Raised when a token does not exist in the resolved tenant's namespace."""

    code = "token_not_found"

    def __init__(self, message: str = "Impersonation token not found"):
        super().__init__(message)


class TokenExpiredError(TokenError):
    """Raised when a token is redeemed after its expiry.

    Attributes:
        expired_at: When the token stopped being valid
    """

    code = "token_expired"

    def __init__(self, expired_at: datetime):
        super().__init__("Impersonation token has expired")
        self.expired_at = expired_at


class TokenAlreadyUsedError(TokenError):
    """Raised when a token has already been consumed."""

    code = "token_already_used"

    def __init__(self, message: str = "Impersonation token has already been used"):
        super().__init__(message)


class AuthenticationError(TenantGateError):
    """Base class for login failures surfaced to the user."""

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.args[0]}"


class TooManyAttemptsError(AuthenticationError):
    """Raised when login attempts for an identity and address are throttled.

    Attributes:
        retry_after: Seconds until the next attempt is allowed
    """

    def __init__(self, retry_after: int):
        super().__init__(f"Too many login attempts. Please try again in {retry_after} seconds.")
        self.retry_after = retry_after


class InvalidCredentialsError(AuthenticationError):
    """Raised when credentials do not match an active account."""

    def __init__(self, message: str = GENERIC_LOGIN_FAILURE):
        super().__init__(message)


class PanelAccessDeniedError(AuthenticationError):
    """Raised when a verified account may not use the requested panel.

    Attributes:
        panel: The panel that access was denied to
    """

    def __init__(self, panel: str):
        super().__init__(GENERIC_LOGIN_FAILURE)
        self.panel = panel


class NotAuthenticatedError(AuthenticationError):
    """Raised when a request needs a session in the active context and has none."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
