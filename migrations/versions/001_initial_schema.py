"""Initial database schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create tenants table
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_tenants_active", "tenants", ["is_active"])
    op.create_index("idx_tenants_created", "tenants", ["created_at"])

    # Create domains table
    # ON DELETE CASCADE: domains never outlive their tenant
    op.create_table(
        "domains",
        sa.Column("domain", sa.String(255), primary_key=True),
        sa.Column("tenant_id", sa.String(100), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_domains_tenant", "domains", ["tenant_id"])

    # Create accounts table (tenant_id NULL for central administrators)
    op.create_table(
        "accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", sa.String(100), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("is_owner", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("allowed_panels", postgresql.JSONB, nullable=False),
        sa.Column("capabilities", postgresql.JSONB, nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_accounts_tenant_email"),
    )
    op.create_index("idx_accounts_email", "accounts", ["email"])

    # Create impersonation_tokens table
    op.create_table(
        "impersonation_tokens",
        sa.Column("token", sa.String(128), primary_key=True),
        sa.Column("tenant_id", sa.String(100), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("redirect_path", sa.String(2048), nullable=False),
        sa.Column("panel", sa.String(100), nullable=False),
        sa.Column("impersonator_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_tokens_tenant", "impersonation_tokens", ["tenant_id"])
    op.create_index("idx_tokens_expires", "impersonation_tokens", ["expires_at"])


def downgrade() -> None:
    op.drop_table("impersonation_tokens")
    op.drop_table("accounts")
    op.drop_table("domains")
    op.drop_table("tenants")
