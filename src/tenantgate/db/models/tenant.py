"""Tenant and domain models."""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantgate.core.types import utcnow

from .base import Base, UTCDateTime


class Tenant(Base):
    """An isolated customer account.

    ``deleted_at`` marks a soft delete; such rows are hidden from listing and
    domain resolution until restored.
    """

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Status
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    domains: Mapped[list["Domain"]] = relationship(
        back_populates="tenant",
        cascade="all, delete-orphan",
        order_by="Domain.created_at",
    )

    __table_args__ = (
        Index("idx_tenants_active", "is_active"),
        Index("idx_tenants_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name})>"


class Domain(Base):
    """A hostname or bare subdomain label owned by exactly one tenant."""

    __tablename__ = "domains"

    domain: Mapped[str] = mapped_column(String(255), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    tenant: Mapped[Tenant] = relationship(back_populates="domains")

    __table_args__ = (Index("idx_domains_tenant", "tenant_id"),)

    def __repr__(self) -> str:
        return f"<Domain(domain={self.domain}, tenant_id={self.tenant_id})>"
