"""Create users table reviewed by the moderation console.

Revision ID: 001_users
Revises:
Create Date: 2026-10-19

Creates:
- users: user profiles with verification status and gender
- ix_users_is_verified_created_at: pending-queue lookup ordered by creation
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001_users"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if table_exists("users"):
        return

    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            primary_key=True,
            server_default=sa.text("uuid_generate_v4()"),
        ),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("age", sa.Integer, nullable=True),
        sa.Column("gender", sa.String(32), nullable=True),
        sa.Column("country", sa.Text, nullable=True),
        sa.Column("image_urls", postgresql.ARRAY(sa.Text), nullable=True),
        sa.Column("verification_photo_url", sa.Text, nullable=True),
        sa.Column(
            "is_verified",
            sa.String(20),
            nullable=True,
            comment="verified, unverified, pending",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.CheckConstraint(
            "is_verified IN ('verified', 'unverified', 'pending')",
            name="ck_users_is_verified",
        ),
    )

    op.create_index(
        "ix_users_is_verified_created_at",
        "users",
        ["is_verified", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    if table_exists("users"):
        op.drop_index("ix_users_is_verified_created_at", table_name="users")
        op.drop_table("users")
