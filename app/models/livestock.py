"""Sheep (oveja), SheepWeight and SheepHistoryEntry ORM models.

Tags (caravanas) are human-assigned and act as soft foreign keys for
parentage: ``mother_tag`` / ``father_tag`` are never enforced by the
database.  Sheep are archived rather than deleted so those references and
their history stay resolvable.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, ObservationMixin, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import LifecycleStateEnum, SheepSexEnum


class Sheep(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """One animal; tag is unique among the farm's active sheep."""

    __tablename__ = "sheep"
    __table_args__ = (
        Index("ix_sheep_farm_state", "farm_id", "lifecycle_state"),
        Index(
            "uq_sheep_farm_active_tag",
            "farm_id",
            "tag",
            unique=True,
            postgresql_where=text("lifecycle_state = 'active'"),
        ),
    )

    farm_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farms.id", ondelete="CASCADE"),
        nullable=False,
    )
    tag: Mapped[str] = mapped_column(String(64), nullable=False)
    birth_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sex: Mapped[SheepSexEnum] = mapped_column(
        Enum(
            SheepSexEnum,
            name="sheep_sex",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=SheepSexEnum.female,
    )
    breed: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    mother_tag: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    father_tag: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    lifecycle_state: Mapped[LifecycleStateEnum] = mapped_column(
        Enum(
            LifecycleStateEnum,
            name="lifecycle_state",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=LifecycleStateEnum.active,
        server_default=LifecycleStateEnum.active.value,
    )

    # ── Reproductive state ───────────────────────────────────────────────
    pregnant: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    last_birth_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_insemination_on: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expected_birth_on: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── Relationships ────────────────────────────────────────────────────
    weights: Mapped[list[SheepWeight]] = relationship(
        back_populates="sheep",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SheepWeight.observed_on",
    )

    @property
    def is_active(self) -> bool:
        return self.lifecycle_state == LifecycleStateEnum.active

    @property
    def latest_weight(self) -> float | None:
        if not self.weights:
            return None
        return self.weights[-1].value_kg

    def __repr__(self) -> str:
        return f"<Sheep id={self.id} tag={self.tag!r} state={self.lifecycle_state}>"


class SheepWeight(Base, ObservationMixin):
    """A single weight observation; ordered by ``observed_on``."""

    __tablename__ = "sheep_weights"
    __table_args__ = (Index("ix_sheep_weights_sheep_observed", "sheep_id", "observed_on"),)

    sheep_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sheep.id", ondelete="CASCADE"),
        nullable=False,
    )
    observed_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    value_kg: Mapped[float] = mapped_column(Float, nullable=False)

    sheep: Mapped[Sheep] = relationship(back_populates="weights")

    def __repr__(self) -> str:
        return f"<SheepWeight sheep={self.sheep_id} kg={self.value_kg}>"


class SheepHistoryEntry(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Free-text event in a sheep's history (treatment, birth, note, …)."""

    __tablename__ = "sheep_history"
    __table_args__ = (Index("ix_sheep_history_farm_occurred", "farm_id", "occurred_on"),)

    farm_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farms.id", ondelete="CASCADE"),
        nullable=False,
    )
    sheep_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sheep.id", ondelete="CASCADE"),
        nullable=False,
    )
    tag: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    detail: Mapped[str] = mapped_column(Text, nullable=False, default="")
    occurred_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<SheepHistoryEntry sheep={self.sheep_id} title={self.title!r}>"
