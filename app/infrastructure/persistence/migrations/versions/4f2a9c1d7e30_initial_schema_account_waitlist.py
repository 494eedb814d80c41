"""Initial schema: account, waitlist_entry

Revision ID: 4f2a9c1d7e30
Revises:
Create Date: 2026-10-19 10:12:41.508214

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f2a9c1d7e30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _provider_columns(prefix: str) -> list[sa.Column]:
    return [
        sa.Column(f"{prefix}_id", sa.String(), nullable=True),
        sa.Column(f"{prefix}_access_token", sa.Text(), nullable=True),
        sa.Column(f"{prefix}_refresh_token", sa.Text(), nullable=True),
        sa.Column(f"{prefix}_access_token_expires_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create account and waitlist_entry tables."""
    op.create_table(
        "account",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), server_default="user", nullable=False),
        sa.Column("auth_provider", sa.String(length=32), server_default="local", nullable=False),
        sa.Column("password_hash", sa.String(), nullable=True),
        *_provider_columns("google"),
        *_provider_columns("microsoft"),
        *_provider_columns("yahoo"),
        sa.Column("yahoo_app_password", sa.Text(), nullable=True),
        sa.Column("profile_picture", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), server_default="active", nullable=False),
        sa.Column("verified", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("first_login", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("inbox_list", sa.JSON(), nullable=False),
        sa.Column("important_keywords", sa.JSON(), nullable=False),
        sa.Column("subscription", sa.JSON(), nullable=False),
        sa.Column("last_sync", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('user', 'admin', 'super_admin')", name="account_role_check"
        ),
        sa.CheckConstraint(
            "status IN ('active', 'pending', 'canceled', 'blocked')",
            name="account_status_check",
        ),
        sa.CheckConstraint(
            "auth_provider IN ('local', 'google', 'microsoft', 'yahoo')",
            name="account_auth_provider_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_account_email"), "account", ["email"], unique=True)
    op.create_index(op.f("ix_account_status"), "account", ["status"], unique=False)

    op.create_table(
        "waitlist_entry",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("inbox", sa.String(length=320), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), server_default="pending", nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="waitlist_entry_status_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_waitlist_entry_email"), "waitlist_entry", ["email"], unique=True)
    op.create_index(op.f("ix_waitlist_entry_status"), "waitlist_entry", ["status"], unique=False)


def downgrade() -> None:
    """Drop waitlist_entry and account."""
    op.drop_index(op.f("ix_waitlist_entry_status"), table_name="waitlist_entry")
    op.drop_index(op.f("ix_waitlist_entry_email"), table_name="waitlist_entry")
    op.drop_table("waitlist_entry")
    op.drop_index(op.f("ix_account_status"), table_name="account")
    op.drop_index(op.f("ix_account_email"), table_name="account")
    op.drop_table("account")
