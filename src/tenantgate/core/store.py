"""Persistence collaborator interface and an in-memory implementation.

The core never talks to a database directly. It consumes a TenancyStore;
tenantgate.db.store.SQLTenancyStore is the SQLAlchemy-backed implementation
and InMemoryTenancyStore below serves tests and single-process development.

Tokens and accounts are always addressed with the tenant that owns them, so
a lookup made in one tenant's namespace can never see another tenant's rows.
"""

import threading
from datetime import datetime
from typing import Protocol

from tenantgate.core.types import (
    DomainRecord,
    ImpersonationToken,
    TenantRecord,
    UserAccount,
    utcnow,
)


class TenancyStore(Protocol):
    """Protocol for tenant, domain, account and token persistence."""

    # Domains
    async def find_domain_by_host(self, host: str) -> DomainRecord | None:
        """Find the domain record exactly matching ``host``."""
        ...

    async def find_domains(self, tenant_id: str) -> list[DomainRecord]:
        """List a tenant's domains, first-registered first."""
        ...

    async def create_domain(self, record: DomainRecord) -> DomainRecord: ...

    # Tenants
    async def find_tenant(self, tenant_id: str, *, include_deleted: bool = False) -> TenantRecord | None: ...

    async def find_tenant_by_name(self, name: str) -> TenantRecord | None:
        """Case-insensitive name lookup, including soft-deleted tenants."""
        ...

    async def list_tenants(
        self,
        *,
        active: bool | None = None,
        include_deleted: bool = False,
    ) -> list[TenantRecord]:
        """List tenants, newest first."""
        ...

    async def create_tenant(self, record: TenantRecord) -> TenantRecord: ...

    async def save_tenant(self, record: TenantRecord) -> TenantRecord: ...

    # Accounts
    async def find_account(self, tenant_id: str | None, email: str) -> UserAccount | None: ...

    async def create_account(self, account: UserAccount) -> UserAccount: ...

    async def update_account_password(self, tenant_id: str | None, email: str, password_hash: str) -> bool:
        """Replace an account's password hash. Returns False if no account matched."""
        ...

    async def rename_account(self, tenant_id: str | None, email: str, new_email: str) -> bool:
        """Change an account's login email. Returns False if no account matched."""
        ...

    # Impersonation tokens
    async def create_token(self, record: ImpersonationToken) -> ImpersonationToken: ...

    async def find_token(self, tenant_id: str, token: str) -> ImpersonationToken | None: ...

    async def update_token_consumed(
        self,
        tenant_id: str,
        token: str,
        expected_consumed: bool = False,
    ) -> bool:
        """Flip ``consumed`` only if it currently equals ``expected_consumed``.

        Returns:
            True if this call changed the row, False if another caller got there first
        """
        ...

    async def delete_expired_tokens(self, tenant_id: str, now: datetime | None = None) -> int: ...


class InMemoryTenancyStore(TenancyStore):
    """Process-local TenancyStore.

    Records are copied on the way in and out so callers cannot mutate stored
    state behind the store's back. A single lock serializes writes, which
    makes the conditional token update atomic across threads and tasks.

    Example:
        store = InMemoryTenancyStore()
        await store.create_tenant(TenantRecord(id="acme", name="Acme", email="a@acme.test"))
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tenants: dict[str, TenantRecord] = {}
        self._domains: dict[str, DomainRecord] = {}
        self._accounts: dict[tuple[str | None, str], UserAccount] = {}
        self._tokens: dict[str, dict[str, ImpersonationToken]] = {}

    # Domains

    async def find_domain_by_host(self, host: str) -> DomainRecord | None:
        record = self._domains.get(host.lower())
        return record.model_copy() if record else None

    async def find_domains(self, tenant_id: str) -> list[DomainRecord]:
        domains = [d for d in self._domains.values() if d.tenant_id == tenant_id]
        return [d.model_copy() for d in sorted(domains, key=lambda d: d.created_at)]

    async def create_domain(self, record: DomainRecord) -> DomainRecord:
        key = record.domain.lower()
        with self._lock:
            if key in self._domains:
                raise ValueError(f"Domain already registered: {record.domain}")
            self._domains[key] = record.model_copy(update={"domain": key})
        return self._domains[key].model_copy()

    # Tenants

    async def find_tenant(self, tenant_id: str, *, include_deleted: bool = False) -> TenantRecord | None:
        tenant = self._tenants.get(tenant_id)
        if tenant is None or (tenant.is_deleted and not include_deleted):
            return None
        return tenant.model_copy()

    async def find_tenant_by_name(self, name: str) -> TenantRecord | None:
        wanted = name.strip().lower()
        for tenant in self._tenants.values():
            if tenant.name.lower() == wanted:
                return tenant.model_copy()
        return None

    async def list_tenants(
        self,
        *,
        active: bool | None = None,
        include_deleted: bool = False,
    ) -> list[TenantRecord]:
        tenants = [
            t
            for t in self._tenants.values()
            if (include_deleted or not t.is_deleted) and (active is None or t.is_active == active)
        ]
        tenants.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        return [t.model_copy() for t in tenants]

    async def create_tenant(self, record: TenantRecord) -> TenantRecord:
        with self._lock:
            if record.id in self._tenants:
                raise ValueError(f"Tenant already exists: {record.id}")
            self._tenants[record.id] = record.model_copy()
        return record.model_copy()

    async def save_tenant(self, record: TenantRecord) -> TenantRecord:
        with self._lock:
            if record.id not in self._tenants:
                raise KeyError(record.id)
            self._tenants[record.id] = record.model_copy(update={"updated_at": utcnow()})
        return self._tenants[record.id].model_copy()

    # Accounts

    async def find_account(self, tenant_id: str | None, email: str) -> UserAccount | None:
        account = self._accounts.get((tenant_id, email.lower()))
        return account.model_copy() if account else None

    async def create_account(self, account: UserAccount) -> UserAccount:
        key = (account.tenant_id, account.email.lower())
        with self._lock:
            if key in self._accounts:
                raise ValueError(f"Account already exists: {account.email}")
            self._accounts[key] = account.model_copy()
        return account.model_copy()

    async def update_account_password(self, tenant_id: str | None, email: str, password_hash: str) -> bool:
        key = (tenant_id, email.lower())
        with self._lock:
            account = self._accounts.get(key)
            if account is None:
                return False
            self._accounts[key] = account.model_copy(update={"password_hash": password_hash})
        return True

    async def rename_account(self, tenant_id: str | None, email: str, new_email: str) -> bool:
        new_key = (tenant_id, new_email.lower())
        with self._lock:
            account = self._accounts.get((tenant_id, email.lower()))
            if account is None:
                return False
            if new_key in self._accounts:
                raise ValueError(f"Account already exists: {new_email}")
            del self._accounts[(tenant_id, email.lower())]
            self._accounts[new_key] = account.model_copy(update={"email": new_email.lower()})
        return True

    # Impersonation tokens

    async def create_token(self, record: ImpersonationToken) -> ImpersonationToken:
        with self._lock:
            self._tokens.setdefault(record.tenant_id, {})[record.token] = record.model_copy()
        return record.model_copy()

    async def find_token(self, tenant_id: str, token: str) -> ImpersonationToken | None:
        record = self._tokens.get(tenant_id, {}).get(token)
        return record.model_copy() if record else None

    async def update_token_consumed(
        self,
        tenant_id: str,
        token: str,
        expected_consumed: bool = False,
    ) -> bool:
        with self._lock:
            record = self._tokens.get(tenant_id, {}).get(token)
            if record is None or record.consumed != expected_consumed:
                return False
            self._tokens[tenant_id][token] = record.model_copy(update={"consumed": not expected_consumed})
            return True

    async def delete_expired_tokens(self, tenant_id: str, now: datetime | None = None) -> int:
        now = now or utcnow()
        with self._lock:
            tokens = self._tokens.get(tenant_id, {})
            expired = [key for key, record in tokens.items() if record.is_expired(now)]
            for key in expired:
                del tokens[key]
        return len(expired)
