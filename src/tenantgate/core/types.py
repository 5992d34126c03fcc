"""Records exchanged between the core services and the persistence layer."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

IMPERSONATE_CAPABILITY = "tenants.impersonate"
MANAGE_TENANTS_CAPABILITY = "tenants.manage"


def utcnow() -> datetime:
    return datetime.now(UTC)


class TenantRecord(BaseModel):
    """A tenant: an isolated customer account with its own namespace."""

    id: str
    name: str
    email: str
    phone: str | None = None
    password_hash: str | None = Field(default=None, repr=False)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_resolvable(self) -> bool:
        """Whether requests for this tenant's domains should be served."""
        return self.is_active and not self.is_deleted


class DomainRecord(BaseModel):
    """Maps one hostname (or bare subdomain label) to one tenant."""

    domain: str
    tenant_id: str
    created_at: datetime = Field(default_factory=utcnow)


class UserAccount(BaseModel):
    """An account that can log in within one namespace.

    Subclasses decide which panels the account may open.
    """

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str | None = None
    email: str
    name: str = ""
    password_hash: str = Field(repr=False)
    is_active: bool = True
    allowed_panels: frozenset[str] = frozenset()
    capabilities: frozenset[str] = frozenset()

    def can_access_panel(self, panel: str) -> bool:
        return self.is_active and panel in self.allowed_panels

    def has_capability(self, capability: str) -> bool:
        return self.is_active and capability in self.capabilities


class CentralAdmin(UserAccount):
    """An administrator of the central context."""

    tenant_id: None = None

    def can_impersonate(self) -> bool:
        return self.has_capability(IMPERSONATE_CAPABILITY)

    def can_manage_tenants(self) -> bool:
        return self.has_capability(MANAGE_TENANTS_CAPABILITY)


class TenantUser(UserAccount):
    """An account living inside a tenant's namespace."""

    tenant_id: str
    is_owner: bool = False


def build_account(
    *,
    tenant_id: str | None,
    is_owner: bool = False,
    **fields,
) -> UserAccount:
    """Construct the account subtype matching the namespace it lives in."""
    if tenant_id is None:
        return CentralAdmin(**fields)
    return TenantUser(tenant_id=tenant_id, is_owner=is_owner, **fields)


class ImpersonationToken(BaseModel):
    """A single-use grant for an admin to enter a tenant as one of its users."""

    token: str = Field(repr=False)
    tenant_id: str
    user_email: str
    redirect_path: str
    panel: str
    impersonator_id: UUID | None = None
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime
    consumed: bool = False

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at


class IssuedToken(BaseModel):
    """What the admin UI receives after issuing an impersonation token."""

    model_config = ConfigDict(frozen=True)

    token: str
    tenant_id: str
    redirect_url: str
    expires_at: datetime


class AuthSession(BaseModel):
    """An authenticated session bound to exactly one context."""

    session_id: str
    tenant_id: str | None
    user_id: UUID
    email: str
    panel: str
    impersonator_id: UUID | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_impersonated(self) -> bool:
        return self.impersonator_id is not None
