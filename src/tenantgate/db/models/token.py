"""Impersonation token model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tenantgate.core.types import utcnow

from .base import Base, PortableUUID, UTCDateTime


class ImpersonationTokenModel(Base):
    """A persisted single-use impersonation grant.

    Rows are always read with their ``tenant_id``; a token is never looked up
    across tenants.
    """

    __tablename__ = "impersonation_tokens"

    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    user_email: Mapped[str] = mapped_column(String(255), nullable=False)
    redirect_path: Mapped[str] = mapped_column(String(2048), nullable=False)
    panel: Mapped[str] = mapped_column(String(100), nullable=False)
    impersonator_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    consumed: Mapped[bool] = mapped_column(default=False, nullable=False)

    __table_args__ = (
        Index("idx_tokens_tenant", "tenant_id"),
        Index("idx_tokens_expires", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<ImpersonationToken(tenant_id={self.tenant_id}, consumed={self.consumed})>"
