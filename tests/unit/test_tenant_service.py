"""Unit tests for tenant management operations."""

import pytest

from tenantgate.core.exceptions import TenantNotFoundError, TenantValidationError
from tenantgate.core.passwords import verify_password
from tenantgate.core.types import TenantUser
from tenantgate.core.validation import TenantUpdateData


class TestCreateTenant:
    """Tests for TenantService.create_tenant()."""

    @pytest.mark.asyncio
    async def test_creates_tenant_domain_and_owner(self, store, acme):
        assert acme.id == "acme"
        assert acme.email == "owner@acme.com"
        assert acme.is_active

        domains = await store.find_domains("acme")
        assert [d.domain for d in domains] == ["acme"]

        owner = await store.find_account("acme", "owner@acme.com")
        assert isinstance(owner, TenantUser)
        assert owner.is_owner
        assert owner.can_access_panel("app")
        assert not owner.can_access_panel("admin")

    @pytest.mark.asyncio
    async def test_password_is_hashed(self, store, acme):
        owner = await store.find_account("acme", "owner@acme.com")

        assert acme.password_hash != "acme-secret-1"
        assert verify_password("acme-secret-1", acme.password_hash)
        assert verify_password("acme-secret-1", owner.password_hash)

    @pytest.mark.asyncio
    async def test_invalid_payload_creates_nothing(self, store, make_tenant):
        with pytest.raises(TenantValidationError):
            await make_tenant("Acme", password_confirmation="mismatch")

        assert await store.list_tenants(include_deleted=True) == []


class TestReadTenants:
    @pytest.mark.asyncio
    async def test_get_unknown(self, tenant_service):
        with pytest.raises(TenantNotFoundError) as exc_info:
            await tenant_service.get_tenant("nope")

        assert exc_info.value.tenant_id == "nope"

    @pytest.mark.asyncio
    async def test_list_newest_first(self, tenant_service, make_tenant):
        await make_tenant("Acme")
        await make_tenant("Globex")

        tenants = await tenant_service.list_tenants()
        assert [t.id for t in tenants] == ["globex", "acme"]

    @pytest.mark.asyncio
    async def test_list_filters(self, tenant_service, make_tenant):
        await make_tenant("Acme")
        await make_tenant("Globex", is_active=False)
        await make_tenant("Initech")
        await tenant_service.delete_tenant("initech")

        assert [t.id for t in await tenant_service.list_tenants(active=True)] == ["acme"]
        assert [t.id for t in await tenant_service.list_tenants(active=False)] == ["globex"]
        assert {t.id for t in await tenant_service.list_tenants(include_deleted=True)} == {
            "acme",
            "globex",
            "initech",
        }


class TestUpdateTenant:
    """Tests for TenantService.update_tenant()."""

    @pytest.mark.asyncio
    async def test_update_fields(self, tenant_service, acme):
        updated = await tenant_service.update_tenant("acme", TenantUpdateData(name="Acme Inc", phone="+1 555 0100"))

        assert updated.name == "Acme Inc"
        assert updated.phone == "+1 555 0100"
        assert updated.email == acme.email
        assert updated.updated_at >= acme.updated_at

    @pytest.mark.asyncio
    async def test_clear_phone(self, tenant_service, make_tenant):
        await make_tenant("Acme", phone="+1 555 0100")

        updated = await tenant_service.update_tenant("acme", TenantUpdateData(phone=""))
        assert updated.phone is None

    @pytest.mark.asyncio
    async def test_omitted_phone_unchanged(self, tenant_service, make_tenant):
        await make_tenant("Acme", phone="+1 555 0100")

        updated = await tenant_service.update_tenant("acme", TenantUpdateData(name="Acme Two"))
        assert updated.phone == "+1 555 0100"

    @pytest.mark.asyncio
    async def test_email_change_moves_owner_login(self, tenant_service, store, acme):
        await tenant_service.update_tenant("acme", TenantUpdateData(email="boss@acme.com"))

        assert await store.find_account("acme", "owner@acme.com") is None
        assert await store.find_account("acme", "boss@acme.com") is not None

    @pytest.mark.asyncio
    async def test_password_change_updates_tenant_and_owner(self, tenant_service, store, acme):
        payload = TenantUpdateData(password="brand-new-pass", password_confirmation="brand-new-pass")

        updated = await tenant_service.update_tenant("acme", payload)
        owner = await store.find_account("acme", "owner@acme.com")

        assert verify_password("brand-new-pass", updated.password_hash)
        assert verify_password("brand-new-pass", owner.password_hash)

    @pytest.mark.asyncio
    async def test_id_cannot_change(self, tenant_service, acme):
        with pytest.raises(TenantValidationError) as exc_info:
            await tenant_service.update_tenant("acme", TenantUpdateData(id="acme2"))

        assert "id" in exc_info.value.errors


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_soft_delete_and_restore(self, tenant_service, store, acme):
        deleted = await tenant_service.delete_tenant("acme")
        assert deleted.is_deleted

        with pytest.raises(TenantNotFoundError):
            await tenant_service.get_tenant("acme")
        assert (await tenant_service.get_tenant("acme", include_deleted=True)).is_deleted

        restored = await tenant_service.restore_tenant("acme")
        assert not restored.is_deleted
        assert (await store.find_domains("acme"))[0].domain == "acme"

    @pytest.mark.asyncio
    async def test_restore_live_tenant_is_noop(self, tenant_service, acme):
        restored = await tenant_service.restore_tenant("acme")
        assert restored.updated_at == acme.updated_at

    @pytest.mark.asyncio
    async def test_delete_twice(self, tenant_service, acme):
        await tenant_service.delete_tenant("acme")

        with pytest.raises(TenantNotFoundError):
            await tenant_service.delete_tenant("acme")

    @pytest.mark.asyncio
    async def test_set_active(self, tenant_service, acme):
        assert not (await tenant_service.set_active("acme", False)).is_active
        assert (await tenant_service.set_active("acme", True)).is_active


class TestDomainsAndLinks:
    @pytest.mark.asyncio
    async def test_add_domain(self, tenant_service, acme):
        record = await tenant_service.add_domain("acme", "Portal.Acme.test")

        assert record.domain == "portal.acme.test"
        assert [d.domain for d in await tenant_service.list_domains("acme")] == ["acme", "portal.acme.test"]

    @pytest.mark.asyncio
    async def test_add_taken_domain(self, tenant_service, acme, make_tenant):
        await make_tenant("Globex")

        with pytest.raises(TenantValidationError):
            await tenant_service.add_domain("globex", "acme")

    @pytest.mark.asyncio
    async def test_tenant_url_uses_first_domain(self, tenant_service, acme):
        await tenant_service.add_domain("acme", "portal.acme.test")

        assert await tenant_service.tenant_url("acme") == "https://acme.example.com/app"
        assert await tenant_service.tenant_url("acme", "login") == "https://acme.example.com/login"

    @pytest.mark.asyncio
    async def test_primary_domain(self, tenant_service, acme):
        assert (await tenant_service.primary_domain("acme")).domain == "acme"


class TestResetPassword:
    @pytest.mark.asyncio
    async def test_reset_password(self, tenant_service, store, acme):
        await tenant_service.reset_password("acme", "reset-password", "reset-password")

        owner = await store.find_account("acme", "owner@acme.com")
        assert verify_password("reset-password", owner.password_hash)
        assert not verify_password("acme-secret-1", owner.password_hash)

    @pytest.mark.asyncio
    async def test_reset_password_validates(self, tenant_service, acme):
        with pytest.raises(TenantValidationError):
            await tenant_service.reset_password("acme", "short", "short")

    @pytest.mark.asyncio
    async def test_reset_password_unknown_tenant(self, tenant_service):
        with pytest.raises(TenantNotFoundError):
            await tenant_service.reset_password("nope", "reset-password", "reset-password")
