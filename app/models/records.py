"""RainfallRecord and Task ORM models: per-farm daily records.

Calendar dates are stored as ``timestamptz`` fixed at 12:00 UTC so the day
never shifts when rendered in any timezone between UTC-12 and UTC+11.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import RainfallSourceEnum, TaskCategoryEnum


class RainfallRecord(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Millimetres of rain on one calendar day. Created or deleted, never updated."""

    __tablename__ = "rainfall_records"
    __table_args__ = (
        CheckConstraint("amount_mm >= 0", name="ck_rainfall_amount_non_negative"),
        Index("ix_rainfall_farm_recorded_on", "farm_id", "recorded_on"),
    )

    farm_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farms.id", ondelete="CASCADE"),
        nullable=False,
    )
    recorded_on: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    amount_mm: Mapped[float] = mapped_column(Float, nullable=False)
    source: Mapped[RainfallSourceEnum] = mapped_column(
        Enum(
            RainfallSourceEnum,
            name="rainfall_source",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=RainfallSourceEnum.manual,
        server_default=RainfallSourceEnum.manual.value,
    )

    def __repr__(self) -> str:
        return (
            f"<RainfallRecord id={self.id} farm={self.farm_id} "
            f"on={self.recorded_on:%Y-%m-%d} mm={self.amount_mm}>"
        )


class Task(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Scheduled farm task; ``sheep_tag`` is a soft reference to a sheep."""

    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_farm_due_on", "farm_id", "due_on"),)

    farm_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farms.id", ondelete="CASCADE"),
        nullable=False,
    )
    category: Mapped[TaskCategoryEnum] = mapped_column(
        Enum(
            TaskCategoryEnum,
            name="task_category",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    due_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    sheep_tag: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<Task id={self.id} category={self.category} done={self.completed}>"
