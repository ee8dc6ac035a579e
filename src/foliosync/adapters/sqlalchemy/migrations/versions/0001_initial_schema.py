"""Initial document store schema: users, categories and entries.

Revision ID: 0001
Revises:
Create Date: 2025-03-01 09:30:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Role is stored by member name
ROLE = sa.Enum(
    "SUPERADMIN",
    "DIRECTOR",
    "DEPUTY",
    "DUTY_OFFICER",
    "TEAM_LEADER",
    "USER",
    name="role",
    native_enum=False,
)


def upgrade() -> None:
    op.create_table(
        "user_record",
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("position", sa.String(), nullable=False),
        sa.Column("department", sa.String(), nullable=False),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("external_id", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_by", sa.String(64), nullable=True),
        sa.Column("last_imported_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("imported", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("username", name=op.f("pk_user_record")),
        sa.UniqueConstraint(
            "external_id", name=op.f("uq_user_record_user_record_external_id")
        ),
    )
    op.create_table(
        "category",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("form_config", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_category")),
    )
    op.create_table(
        "entry",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("category_id", sa.String(64), nullable=True),
        sa.Column("category_name", sa.String(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("migrated_from", sa.String(64), nullable=True),
        sa.Column("migrated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("migrated_by", sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_entry")),
    )
    op.create_index(op.f("ix_entry_user_id"), "entry", ["user_id"])
    op.create_index(op.f("ix_entry_category_id"), "entry", ["category_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_entry_category_id"), table_name="entry")
    op.drop_index(op.f("ix_entry_user_id"), table_name="entry")
    op.drop_table("entry")
    op.drop_table("category")
    op.drop_table("user_record")
