"""initial_schema

Revision ID: 3f9c2a7e51b0
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the uuid-ossp extension, 7 PostgreSQL enum types and the 9 tables
of the Nimbo schema: users, farms, farm_members, invitations,
rainfall_records, tasks, sheep, sheep_weights and sheep_history.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f9c2a7e51b0"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# ── Enum type names (PostgreSQL CREATE TYPE) ────────────────────────────────
ENUM_USER_ROLE = postgresql.ENUM("user", "admin", name="user_role", create_type=False)
ENUM_MEMBER_ROLE = postgresql.ENUM(
    "owner", "editor", "viewer", name="member_role", create_type=False
)
ENUM_INVITATION_STATUS = postgresql.ENUM(
    "pending", "accepted", "declined", name="invitation_status", create_type=False
)
ENUM_RAINFALL_SOURCE = postgresql.ENUM(
    "manual", "archivo", name="rainfall_source", create_type=False
)
ENUM_SHEEP_SEX = postgresql.ENUM("female", "male", name="sheep_sex", create_type=False)
ENUM_LIFECYCLE_STATE = postgresql.ENUM(
    "active", "archived", name="lifecycle_state", create_type=False
)
ENUM_TASK_CATEGORY = postgresql.ENUM(
    "vaccination",
    "deworming",
    "checkup",
    "shearing",
    "expected_birth",
    "insemination",
    "feeding",
    "other",
    name="task_category",
    create_type=False,
)

_ALL_ENUMS = (
    ENUM_USER_ROLE,
    ENUM_MEMBER_ROLE,
    ENUM_INVITATION_STATUS,
    ENUM_RAINFALL_SOURCE,
    ENUM_SHEEP_SEX,
    ENUM_LIFECYCLE_STATE,
    ENUM_TASK_CATEGORY,
)


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("uuid_generate_v4()"),
        nullable=False,
    )


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


def _farm_fk() -> sa.Column:
    return sa.Column(
        "farm_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("farms.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── 1. Create enum types ────────────────────────────────────────────
    for enum_type in _ALL_ENUMS:
        enum_type.create(op.get_bind(), checkfirst=True)

    # ── 2. Accounts ─────────────────────────────────────────────────────
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("hashed_password", sa.String(128), nullable=False),
        sa.Column("display_name", sa.String(255), server_default=sa.text("''"), nullable=False),
        sa.Column("role", ENUM_USER_ROLE, server_default="user", nullable=False),
        sa.Column("is_approved", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── 3. Tenancy ──────────────────────────────────────────────────────
    op.create_table(
        "farms",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "owner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("owner_email", sa.String(320), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "farm_members",
        _uuid_pk(),
        _farm_fk(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("role", ENUM_MEMBER_ROLE, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("farm_id", "user_id", name="uq_farm_members_farm_user"),
    )
    op.create_index("ix_farm_members_user_id", "farm_members", ["user_id"])

    op.create_table(
        "invitations",
        _uuid_pk(),
        _farm_fk(),
        sa.Column("farm_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("email_lower", sa.String(320), nullable=False),
        sa.Column("role", ENUM_MEMBER_ROLE, nullable=False),
        sa.Column("status", ENUM_INVITATION_STATUS, server_default="pending", nullable=False),
        sa.Column(
            "invited_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("invited_by_email", sa.String(320), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invitations_email_status", "invitations", ["email_lower", "status"])
    op.create_index("ix_invitations_farm_id", "invitations", ["farm_id"])

    # ── 4. Daily records ────────────────────────────────────────────────
    op.create_table(
        "rainfall_records",
        _uuid_pk(),
        _farm_fk(),
        sa.Column("recorded_on", sa.DateTime(timezone=True), nullable=False),
        sa.Column("amount_mm", sa.Float(), nullable=False),
        sa.Column("source", ENUM_RAINFALL_SOURCE, server_default="manual", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("amount_mm >= 0", name="ck_rainfall_amount_non_negative"),
    )
    op.create_index("ix_rainfall_farm_recorded_on", "rainfall_records", ["farm_id", "recorded_on"])

    op.create_table(
        "tasks",
        _uuid_pk(),
        _farm_fk(),
        sa.Column("category", ENUM_TASK_CATEGORY, nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("due_on", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("sheep_tag", sa.String(64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_farm_due_on", "tasks", ["farm_id", "due_on"])

    # ── 5. Livestock ────────────────────────────────────────────────────
    op.create_table(
        "sheep",
        _uuid_pk(),
        _farm_fk(),
        sa.Column("tag", sa.String(64), nullable=False),
        sa.Column("birth_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sex", ENUM_SHEEP_SEX, nullable=False),
        sa.Column("breed", sa.String(100), nullable=False),
        sa.Column("mother_tag", sa.String(64), nullable=False),
        sa.Column("father_tag", sa.String(64), nullable=False),
        sa.Column("lifecycle_state", ENUM_LIFECYCLE_STATE, server_default="active", nullable=False),
        sa.Column("pregnant", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("last_birth_on", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_insemination_on", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expected_birth_on", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sheep_farm_state", "sheep", ["farm_id", "lifecycle_state"])
    op.create_index(
        "uq_sheep_farm_active_tag",
        "sheep",
        ["farm_id", "tag"],
        unique=True,
        postgresql_where=sa.text("lifecycle_state = 'active'"),
    )

    op.create_table(
        "sheep_weights",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column(
            "sheep_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("sheep.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("observed_on", sa.DateTime(timezone=True), nullable=False),
        sa.Column("value_kg", sa.Float(), nullable=False),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sheep_weights_sheep_observed", "sheep_weights", ["sheep_id", "observed_on"])

    op.create_table(
        "sheep_history",
        _uuid_pk(),
        _farm_fk(),
        sa.Column(
            "sheep_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("sheep.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("tag", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("detail", sa.Text(), nullable=False),
        sa.Column("occurred_on", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sheep_history_farm_occurred", "sheep_history", ["farm_id", "occurred_on"])


def downgrade() -> None:
    # ── Drop tables in reverse dependency order ─────────────────────────
    op.drop_table("sheep_history")
    op.drop_table("sheep_weights")
    op.drop_table("sheep")
    op.drop_table("tasks")
    op.drop_table("rainfall_records")
    op.drop_table("invitations")
    op.drop_table("farm_members")
    op.drop_table("farms")
    op.drop_table("users")

    # ── Drop enum types ─────────────────────────────────────────────────
    for enum_type in reversed(_ALL_ENUMS):
        enum_type.drop(op.get_bind(), checkfirst=True)
