"""Tenant management request and response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from tenantgate.core.types import DomainRecord, TenantRecord


class DomainResponse(BaseModel):
    domain: str
    url: str
    created_at: datetime


class TenantResponse(BaseModel):
    """A tenant as shown in the admin UI.

    ``url`` is the "view" link to the tenant's panel on its canonical domain.
    """

    id: str
    name: str
    email: str
    phone: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    url: str | None = None

    @classmethod
    def from_record(cls, record: TenantRecord, url: str | None) -> "TenantResponse":
        return cls(**record.model_dump(exclude={"password_hash"}), url=url)


class TenantListResponse(BaseModel):
    items: list[TenantResponse]
    total: int


class DomainCreateRequest(BaseModel):
    domain: str = Field(..., min_length=1, max_length=255)


class PasswordResetRequest(BaseModel):
    password: str = Field(..., repr=False)
    password_confirmation: str | None = Field(default=None, repr=False)


class ImpersonateRequest(BaseModel):
    """Body of an impersonation request. All fields are optional."""

    target_user: str | None = None
    redirect_path: str | None = None
    panel: str | None = None

    @field_validator("redirect_path")
    @classmethod
    def local_path_only(cls, value: str | None) -> str | None:
        if value is not None and (not value.startswith("/") or value.startswith("//")):
            raise ValueError("redirect_path must be a local absolute path")
        return value


class IssuedTokenResponse(BaseModel):
    tenant_id: str
    redirect_url: str
    expires_at: datetime


def domain_response(record: DomainRecord, url: str) -> DomainResponse:
    return DomainResponse(domain=record.domain, url=url, created_at=record.created_at)
