"""Login account model."""

from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, PortableJSON, PortableUUID


class Account(Base):
    """An account that logs in within one namespace.

    ``tenant_id`` is NULL for central administrators.
    """

    __tablename__ = "accounts"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid4)
    tenant_id: Mapped[str | None] = mapped_column(
        String(100), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    is_owner: Mapped[bool] = mapped_column(default=False, nullable=False)
    allowed_panels: Mapped[list] = mapped_column(PortableJSON(), nullable=False, default=list)
    capabilities: Mapped[list] = mapped_column(PortableJSON(), nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_accounts_tenant_email"),
        Index("idx_accounts_email", "email"),
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, tenant_id={self.tenant_id})>"
