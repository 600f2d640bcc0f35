"""Account sign-up, credential checks, profile edits and admin approval."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import pwd_context
from app.auth.jwt import AuthError
from app.auth.models import User
from app.models.enums import UserRoleEnum
from app.models.farm import FarmMember

logger = structlog.get_logger("nimbo.users")


def normalize_email(raw: str) -> str:
	return raw.strip().lower()


class UserService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def get_by_email(self, email: str) -> User | None:
		row = await self.db.execute(select(User).where(User.email == normalize_email(email)))
		return row.scalar_one_or_none()

	async def get_user(self, user_id: uuid.UUID) -> User:
		row = await self.db.execute(select(User).where(User.id == user_id))
		user = row.scalar_one_or_none()
		if user is None:
			raise LookupError(f"user {user_id} not found")
		return user

	async def signup(self, email: str, password: str, display_name: str = "") -> User:
		normalized = normalize_email(email)
		if await self.get_by_email(normalized) is not None:
			raise ValueError("An account with this e-mail already exists")

		user = User(
			email=normalized,
			hashed_password=pwd_context.hash(password),
			display_name=display_name.strip(),
			role=UserRoleEnum.user,
			is_approved=False,
			is_active=True,
		)
		self.db.add(user)
		await self.db.flush()
		await self.db.refresh(user)
		logger.info("user_signed_up", user_id=str(user.id))
		return user

	async def authenticate(self, email: str, password: str) -> User:
		user = await self.get_by_email(email)
		if user is None or not user.is_active or not pwd_context.verify(password, user.hashed_password):
			raise AuthError(code="credentials_invalid", detail="Invalid e-mail or password")
		return user

	async def update_profile(self, user: User, display_name: str) -> User:
		"""Rename the user and refresh the denormalized name on their memberships."""
		user.display_name = display_name.strip()
		rows = await self.db.execute(select(FarmMember).where(FarmMember.user_id == user.id))
		for member in rows.scalars().all():
			member.display_name = user.display_name
		await self.db.flush()
		return user

	async def approve(self, user_id: uuid.UUID) -> User:
		user = await self.get_user(user_id)
		user.is_approved = True
		await self.db.flush()
		logger.info("user_approved", user_id=str(user.id))
		return user
