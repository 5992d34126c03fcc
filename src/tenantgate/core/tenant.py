"""Tenant management service.

Operations here are invoked by the central admin UI. Creating a tenant
registers its canonical domain and its owner account in one step; deleting
a tenant is a soft delete that hides it from listing and resolution until
it is restored.
"""

import structlog

from tenantgate.config.settings import Settings, get_settings
from tenantgate.core.exceptions import TenantNotFoundError
from tenantgate.core.passwords import hash_password
from tenantgate.core.resolver import DomainResolver
from tenantgate.core.store import TenancyStore
from tenantgate.core.types import DomainRecord, TenantRecord, TenantUser, utcnow
from tenantgate.core.validation import TenantCreateData, TenantUpdateData, TenantValidator

logger = structlog.get_logger("tenantgate.tenants")


class TenantService:
    """Service for tenant CRUD operations.

    All mutations are logged as structured events.
    """

    def __init__(
        self,
        store: TenancyStore,
        resolver: DomainResolver | None = None,
        settings: Settings | None = None,
    ):
        """Initialize tenant service.

        Args:
            store: Persistence backend for tenants, domains and accounts
            resolver: Used to build tenant URLs (created from ``store`` if None)
            settings: Application settings (global settings if None)
        """
        self.store = store
        self.settings = settings or get_settings()
        self.resolver = resolver or DomainResolver(store, self.settings)
        self.validator = TenantValidator(store, self.settings)

    async def create_tenant(self, data: TenantCreateData) -> TenantRecord:
        """Create a tenant with its canonical domain and owner account.

        Raises:
            TenantValidationError: If the payload violates a field constraint
        """
        data = await self.validator.validate_create(data)
        password_hash = hash_password(data.password, self.settings.bcrypt_rounds)

        tenant = await self.store.create_tenant(
            TenantRecord(
                id=data.id,
                name=data.name,
                email=data.email,
                phone=data.phone,
                password_hash=password_hash,
                is_active=data.is_active,
            )
        )
        await self.store.create_domain(DomainRecord(domain=data.domain, tenant_id=tenant.id))
        await self.store.create_account(
            TenantUser(
                tenant_id=tenant.id,
                email=tenant.email,
                name=tenant.name,
                password_hash=password_hash,
                allowed_panels=frozenset({self.settings.panel}),
                is_owner=True,
            )
        )

        logger.info("tenant_created", target_tenant=tenant.id, domain=data.domain)
        return tenant

    async def get_tenant(self, tenant_id: str, *, include_deleted: bool = False) -> TenantRecord:
        """Get a tenant by id.

        Raises:
            TenantNotFoundError: If the tenant does not exist (or is deleted)
        """
        tenant = await self.store.find_tenant(tenant_id, include_deleted=include_deleted)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    async def list_tenants(
        self,
        *,
        active: bool | None = None,
        include_deleted: bool = False,
    ) -> list[TenantRecord]:
        """List tenants, newest first.

        Args:
            active: Filter on the activation flag (None for all)
            include_deleted: Include soft-deleted tenants
        """
        return await self.store.list_tenants(active=active, include_deleted=include_deleted)

    async def update_tenant(self, tenant_id: str, data: TenantUpdateData) -> TenantRecord:
        """Apply an edit payload.

        The id cannot change. A new password replaces the hash of both the
        tenant and its owner account.

        Raises:
            TenantNotFoundError: If the tenant does not exist
            TenantValidationError: If the payload violates a field constraint
        """
        tenant = await self.get_tenant(tenant_id)
        data = await self.validator.validate_update(tenant, data)

        changes = data.model_dump(include={"name", "email", "is_active"}, exclude_none=True)
        if "phone" in data.model_fields_set:
            changes["phone"] = data.phone

        if "email" in changes and changes["email"] != tenant.email:
            await self.store.rename_account(tenant.id, tenant.email, changes["email"])

        if data.password:
            changes["password_hash"] = hash_password(data.password, self.settings.bcrypt_rounds)
            await self.store.update_account_password(
                tenant.id, changes.get("email", tenant.email), changes["password_hash"]
            )

        updated = await self.store.save_tenant(tenant.model_copy(update=changes))
        logger.info(
            "tenant_updated",
            target_tenant=tenant.id,
            fields=sorted(k for k in changes if k != "password_hash"),
            password_changed="password_hash" in changes,
        )
        return updated

    async def set_active(self, tenant_id: str, is_active: bool) -> TenantRecord:
        """Toggle whether the tenant's domains are served."""
        tenant = await self.get_tenant(tenant_id)
        if tenant.is_active == is_active:
            return tenant
        updated = await self.store.save_tenant(tenant.model_copy(update={"is_active": is_active}))
        logger.info("tenant_activated" if is_active else "tenant_deactivated", target_tenant=tenant.id)
        return updated

    async def delete_tenant(self, tenant_id: str) -> TenantRecord:
        """Soft-delete a tenant.

        Raises:
            TenantNotFoundError: If the tenant does not exist or is already deleted
        """
        tenant = await self.get_tenant(tenant_id)
        deleted = await self.store.save_tenant(tenant.model_copy(update={"deleted_at": utcnow()}))
        logger.info("tenant_deleted", target_tenant=tenant.id)
        return deleted

    async def restore_tenant(self, tenant_id: str) -> TenantRecord:
        """Undo a soft delete. Restoring a live tenant is a no-op."""
        tenant = await self.get_tenant(tenant_id, include_deleted=True)
        if not tenant.is_deleted:
            return tenant
        restored = await self.store.save_tenant(tenant.model_copy(update={"deleted_at": None}))
        logger.info("tenant_restored", target_tenant=tenant.id)
        return restored

    async def add_domain(self, tenant_id: str, domain: str) -> DomainRecord:
        """Attach another domain to a tenant.

        Raises:
            TenantNotFoundError: If the tenant does not exist
            TenantValidationError: If the domain is malformed, reserved or taken
        """
        tenant = await self.get_tenant(tenant_id)
        normalized = await self.validator.validate_domain(domain)
        record = await self.store.create_domain(DomainRecord(domain=normalized, tenant_id=tenant.id))
        logger.info("tenant_domain_added", target_tenant=tenant.id, domain=normalized)
        return record

    async def list_domains(self, tenant_id: str) -> list[DomainRecord]:
        tenant = await self.get_tenant(tenant_id, include_deleted=True)
        return await self.store.find_domains(tenant.id)

    async def primary_domain(self, tenant_id: str) -> DomainRecord | None:
        """The first-registered domain of a tenant, if any."""
        domains = await self.list_domains(tenant_id)
        return domains[0] if domains else None

    async def tenant_url(self, tenant_id: str, path: str | None = None) -> str | None:
        """Absolute link to a tenant's panel on its canonical domain."""
        domain = await self.primary_domain(tenant_id)
        if domain is None:
            return None
        return self.resolver.build_url(domain.domain, path if path is not None else self.settings.panel)

    async def reset_password(self, tenant_id: str, password: str, confirmation: str | None) -> TenantRecord:
        """Set a new password for the tenant and its owner account.

        This is a direct hash update. It does not pass through the
        authentication gate and is not throttled.

        Raises:
            TenantNotFoundError: If the tenant does not exist
            TenantValidationError: If the password is too short or unconfirmed
        """
        tenant = await self.get_tenant(tenant_id)
        await self.validator.validate_password(password, confirmation)

        password_hash = hash_password(password, self.settings.bcrypt_rounds)
        updated = await self.store.save_tenant(tenant.model_copy(update={"password_hash": password_hash}))
        await self.store.update_account_password(tenant.id, tenant.email, password_hash)

        logger.info("tenant_password_reset", target_tenant=tenant.id)
        return updated
