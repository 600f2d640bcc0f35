"""User ORM model for JWT authentication.

Users sign up with email/password and start unapproved; an admin flips
``is_approved`` before the account can reach farm data.
"""

from __future__ import annotations

from sqlalchemy import Enum, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import UserRoleEnum


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Application user — authenticates via email/password (JWT).

    ``email`` is stored trimmed and lowercased so invitation matching can
    compare it directly against ``Invitation.email_lower``.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(
        String(128), nullable=False
    )
    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        server_default=text("''"),
    )
    role: Mapped[UserRoleEnum] = mapped_column(
        Enum(
            UserRoleEnum,
            name="user_role",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=UserRoleEnum.user,
        server_default="user",
    )
    is_approved: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"
