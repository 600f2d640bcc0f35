"""ORM model registry: importing this module registers the farm tables on Base.metadata.

``User`` lives in ``app.auth.models`` and is imported from there; it is not
re-exported here because ``app.auth.models`` itself imports ``app.models.base``.
Alembic ``env.py`` imports both modules so that autogenerate sees all tables.
Application code can also do::

    from app.models import Farm, Invitation, RainfallRecord, ...
"""

# ── Base & Mixins ───────────────────────────────────────────────────────────
from app.models.base import (
    Base,
    ObservationMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)

# ── Enums ───────────────────────────────────────────────────────────────────
from app.models.enums import (
    InvitationStatusEnum,
    LifecycleStateEnum,
    MemberRoleEnum,
    RainfallSourceEnum,
    SheepSexEnum,
    TaskCategoryEnum,
    UserRoleEnum,
)

# ── Tenancy models ──────────────────────────────────────────────────────────
from app.models.farm import Farm, FarmMember, Invitation

# ── Livestock ───────────────────────────────────────────────────────────────
from app.models.livestock import Sheep, SheepHistoryEntry, SheepWeight

# ── Daily records ───────────────────────────────────────────────────────────
from app.models.records import RainfallRecord, Task

__all__ = [
    # Base & mixins
    "Base",
    # Tenancy
    "Farm",
    "FarmMember",
    "Invitation",
    # Enums
    "InvitationStatusEnum",
    "LifecycleStateEnum",
    "MemberRoleEnum",
    "ObservationMixin",
    "RainfallRecord",
    "RainfallSourceEnum",
    # Livestock
    "Sheep",
    "SheepHistoryEntry",
    "SheepSexEnum",
    "SheepWeight",
    "Task",
    "TaskCategoryEnum",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "UserRoleEnum",
]
