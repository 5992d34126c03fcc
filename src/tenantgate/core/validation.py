"""Field constraints for tenant create and edit payloads.

Each field carries a fixed set of constraints. Violations are collected per
field and raised together as one TenantValidationError, whose ``errors``
maps field names to the codes of the constraints they broke.
"""

import re
import unicodedata
from enum import StrEnum

from pydantic import BaseModel, Field

from tenantgate.config.settings import Settings, get_settings
from tenantgate.core.exceptions import TenantValidationError
from tenantgate.core.store import TenancyStore
from tenantgate.core.types import TenantRecord

TENANT_ID_PATTERN = re.compile(r"^[a-z0-9_]+$")
DOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)*$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9 ()\-]{5,20}$")


class Constraint(StrEnum):
    """Codes reported for violated field constraints."""

    REQUIRED = "required"
    UNIQUE = "unique"
    PATTERN = "pattern"
    EMAIL = "email"
    MIN_LENGTH = "min_length"
    CONFIRMED = "confirmed"
    IMMUTABLE = "immutable"
    RESERVED = "reserved"


class TenantCreateData(BaseModel):
    """Payload for creating a tenant."""

    name: str = ""
    id: str | None = None
    domain: str | None = None
    email: str = ""
    phone: str | None = None
    password: str | None = Field(default=None, repr=False)
    password_confirmation: str | None = Field(default=None, repr=False)
    is_active: bool = True


class TenantUpdateData(BaseModel):
    """Payload for editing a tenant. Omitted fields are left unchanged."""

    name: str | None = None
    id: str | None = None
    email: str | None = None
    phone: str | None = None
    password: str | None = Field(default=None, repr=False)
    password_confirmation: str | None = Field(default=None, repr=False)
    is_active: bool | None = None


def slugify(value: str, separator: str = "-") -> str:
    """Derive an ASCII slug from a display name.

    >>> slugify("Acme Corp!", "_")
    'acme_corp'
    """
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", separator, ascii_value.lower())
    return slug.strip(separator)


class TenantValidator:
    """Checks tenant payloads against field constraints and store uniqueness."""

    def __init__(self, store: TenancyStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    async def validate_create(self, data: TenantCreateData) -> TenantCreateData:
        """Validate a create payload.

        Derives ``id`` (``_`` separated) and ``domain`` (``-`` separated) from
        the name when omitted.

        Returns:
            A normalized copy of ``data``

        Raises:
            TenantValidationError: If any constraint is violated
        """
        errors: dict[str, list[Constraint]] = {}
        name = data.name.strip()
        tenant_id = (data.id or slugify(name, "_")).strip().lower()
        domain = (data.domain or slugify(name, "-")).strip().lower().rstrip(".")
        email = data.email.strip().lower()
        phone = data.phone.strip() if data.phone else None

        await self._check_name(name, None, errors)

        if not tenant_id:
            errors.setdefault("id", []).append(Constraint.REQUIRED)
        elif not TENANT_ID_PATTERN.match(tenant_id):
            errors.setdefault("id", []).append(Constraint.PATTERN)
        elif await self.store.find_tenant(tenant_id, include_deleted=True) is not None:
            errors.setdefault("id", []).append(Constraint.UNIQUE)

        await self._check_domain(domain, errors)
        self._check_email(email, required=True, errors=errors)
        self._check_phone(phone, errors)
        self._check_password(data.password, data.password_confirmation, required=True, errors=errors)

        if errors:
            raise TenantValidationError(errors)

        return data.model_copy(
            update={"name": name, "id": tenant_id, "domain": domain, "email": email, "phone": phone}
        )

    async def validate_update(self, tenant: TenantRecord, data: TenantUpdateData) -> TenantUpdateData:
        """Validate an edit payload for ``tenant``.

        Raises:
            TenantValidationError: If any constraint is violated
        """
        errors: dict[str, list[Constraint]] = {}
        updates: dict[str, object] = {}

        if data.id is not None and data.id.strip().lower() != tenant.id:
            errors.setdefault("id", []).append(Constraint.IMMUTABLE)

        if data.name is not None:
            updates["name"] = data.name.strip()
            await self._check_name(updates["name"], tenant.id, errors)

        if data.email is not None:
            updates["email"] = data.email.strip().lower()
            self._check_email(updates["email"], required=True, errors=errors)

        if data.phone is not None:
            updates["phone"] = data.phone.strip() or None
            self._check_phone(updates["phone"], errors)

        self._check_password(data.password, data.password_confirmation, required=False, errors=errors)

        if errors:
            raise TenantValidationError(errors)
        return data.model_copy(update=updates)

    async def validate_password(self, password: str | None, confirmation: str | None) -> None:
        """Validate a standalone password reset."""
        errors: dict[str, list[Constraint]] = {}
        self._check_password(password, confirmation, required=True, errors=errors)
        if errors:
            raise TenantValidationError(errors)

    async def validate_domain(self, domain: str) -> str:
        """Validate a domain being attached to an existing tenant."""
        errors: dict[str, list[Constraint]] = {}
        normalized = domain.strip().lower().rstrip(".")
        await self._check_domain(normalized, errors)
        if errors:
            raise TenantValidationError(errors)
        return normalized

    async def _check_name(self, name: str, own_id: str | None, errors: dict[str, list[Constraint]]) -> None:
        if not name:
            errors.setdefault("name", []).append(Constraint.REQUIRED)
            return
        existing = await self.store.find_tenant_by_name(name)
        if existing is not None and existing.id != own_id:
            errors.setdefault("name", []).append(Constraint.UNIQUE)

    async def _check_domain(self, domain: str, errors: dict[str, list[Constraint]]) -> None:
        if not domain:
            errors.setdefault("domain", []).append(Constraint.REQUIRED)
            return
        if not DOMAIN_PATTERN.match(domain):
            errors.setdefault("domain", []).append(Constraint.PATTERN)
            return

        # A bare label and its full host under the central domain are the same address
        central = self.settings.central_domain
        suffix = f".{central}"
        if "." in domain:
            equivalent = domain[: -len(suffix)] if domain.endswith(suffix) else None
            full_host = domain
        else:
            equivalent = full_host = f"{domain}{suffix}"

        if self.settings.is_central_host(full_host) or self.settings.is_central_host(domain):
            errors.setdefault("domain", []).append(Constraint.RESERVED)
            return

        for candidate in filter(None, {domain, equivalent}):
            if await self.store.find_domain_by_host(candidate) is not None:
                errors.setdefault("domain", []).append(Constraint.UNIQUE)
                return

    @staticmethod
    def _check_email(email: str | None, *, required: bool, errors: dict[str, list[Constraint]]) -> None:
        if not email:
            if required:
                errors.setdefault("email", []).append(Constraint.REQUIRED)
            return
        if not EMAIL_PATTERN.match(email):
            errors.setdefault("email", []).append(Constraint.EMAIL)

    @staticmethod
    def _check_phone(phone: str | None, errors: dict[str, list[Constraint]]) -> None:
        if phone and not PHONE_PATTERN.match(phone):
            errors.setdefault("phone", []).append(Constraint.PATTERN)

    def _check_password(
        self,
        password: str | None,
        confirmation: str | None,
        *,
        required: bool,
        errors: dict[str, list[Constraint]],
    ) -> None:
        if not password:
            if required:
                errors.setdefault("password", []).append(Constraint.REQUIRED)
            return
        if len(password) < self.settings.password_min_length:
            errors.setdefault("password", []).append(Constraint.MIN_LENGTH)
        if password != confirmation:
            errors.setdefault("password", []).append(Constraint.CONFIRMED)
