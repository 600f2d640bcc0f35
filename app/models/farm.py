"""Farm (campo), FarmMember and Invitation ORM models: the tenancy layer.

A farm scopes every livestock, rainfall and task record.  Membership rows
double as the member-identity index (``ix_farm_members_user_id``) used to
list the farms a user belongs to.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import InvitationStatusEnum, MemberRoleEnum

# ═══════════════════════════════════════════════════════════════════════════
# Farm
# ═══════════════════════════════════════════════════════════════════════════


class Farm(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A farm: the root entity of one tenant.

    ``owner_id`` is fixed at creation; the owner's membership row always
    carries ``MemberRoleEnum.owner``.
    """

    __tablename__ = "farms"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    owner_email: Mapped[str] = mapped_column(String(320), nullable=False)

    # ── Relationships ────────────────────────────────────────────────────
    members: Mapped[list[FarmMember]] = relationship(
        back_populates="farm",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="FarmMember.created_at",
    )

    @property
    def member_ids(self) -> list[uuid.UUID]:
        return [member.user_id for member in self.members]

    def member_for(self, user_id: uuid.UUID) -> FarmMember | None:
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None

    def __repr__(self) -> str:
        return f"<Farm id={self.id} name={self.name!r} owner={self.owner_id}>"


# ═══════════════════════════════════════════════════════════════════════════
# FarmMember
# ═══════════════════════════════════════════════════════════════════════════


class FarmMember(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Role-scoped association between a user and a farm."""

    __tablename__ = "farm_members"
    __table_args__ = (
        UniqueConstraint("farm_id", "user_id", name="uq_farm_members_farm_user"),
        Index("ix_farm_members_user_id", "user_id"),
    )

    farm_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farms.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    role: Mapped[MemberRoleEnum] = mapped_column(
        Enum(
            MemberRoleEnum,
            name="member_role",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=MemberRoleEnum.editor,
    )

    # ── Relationships ────────────────────────────────────────────────────
    farm: Mapped[Farm] = relationship(back_populates="members")

    def __repr__(self) -> str:
        return f"<FarmMember farm={self.farm_id} user={self.user_id} role={self.role}>"


# ═══════════════════════════════════════════════════════════════════════════
# Invitation
# ═══════════════════════════════════════════════════════════════════════════


class Invitation(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Pending offer of farm membership sent to an email address.

    ``farm_name`` is denormalized so the invitee can see it before being a
    member.  Rows are never deleted; ``responded_at`` is set exactly once.
    """

    __tablename__ = "invitations"
    __table_args__ = (
        Index("ix_invitations_email_status", "email_lower", "status"),
        Index("ix_invitations_farm_id", "farm_id"),
    )

    farm_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farms.id", ondelete="CASCADE"),
        nullable=False,
    )
    farm_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    email_lower: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[MemberRoleEnum] = mapped_column(
        Enum(
            MemberRoleEnum,
            name="member_role",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=MemberRoleEnum.editor,
    )
    status: Mapped[InvitationStatusEnum] = mapped_column(
        Enum(
            InvitationStatusEnum,
            name="invitation_status",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=InvitationStatusEnum.pending,
        server_default=InvitationStatusEnum.pending.value,
    )
    invited_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    invited_by_email: Mapped[str] = mapped_column(String(320), nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<Invitation id={self.id} farm={self.farm_id} "
            f"email={self.email_lower!r} status={self.status}>"
        )
