"""Login and session schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from tenantgate.core.types import AuthSession


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., repr=False)


class SessionResponse(BaseModel):
    """The authenticated session, without its id (which travels in a cookie)."""

    tenant_id: str | None
    user_id: UUID
    email: str
    panel: str
    impersonated: bool
    created_at: datetime

    @classmethod
    def from_session(cls, session: AuthSession) -> "SessionResponse":
        return cls(
            tenant_id=session.tenant_id,
            user_id=session.user_id,
            email=session.email,
            panel=session.panel,
            impersonated=session.is_impersonated,
            created_at=session.created_at,
        )
