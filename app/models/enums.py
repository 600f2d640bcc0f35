"""PostgreSQL-backed enum types for all ORM models.

Each StrEnum maps 1:1 to a PostgreSQL CREATE TYPE ... AS ENUM.
These are separate from the Pydantic StrEnum in app/config.py —
config enums validate settings, ORM enums type database columns.
"""

from enum import StrEnum

# ── Accounts & membership ───────────────────────────────────────────────────


class UserRoleEnum(StrEnum):
    """Platform-wide account role (not the per-farm membership role)."""

    user = "user"
    admin = "admin"


class MemberRoleEnum(StrEnum):
    """Role of a member inside one farm. Exactly one owner per farm."""

    owner = "owner"
    editor = "editor"
    viewer = "viewer"


class InvitationStatusEnum(StrEnum):
    """One-way lifecycle: pending → accepted | declined."""

    pending = "pending"
    accepted = "accepted"
    declined = "declined"


# ── Farm records ────────────────────────────────────────────────────────────


class RainfallSourceEnum(StrEnum):
    """Provenance of a rainfall record."""

    manual = "manual"
    archivo = "archivo"


class SheepSexEnum(StrEnum):
    female = "female"
    male = "male"


class LifecycleStateEnum(StrEnum):
    """Archived sheep stay resolvable for parentage and history."""

    active = "active"
    archived = "archived"


class TaskCategoryEnum(StrEnum):
    vaccination = "vaccination"
    deworming = "deworming"
    checkup = "checkup"
    shearing = "shearing"
    expected_birth = "expected_birth"
    insemination = "insemination"
    feeding = "feeding"
    other = "other"
