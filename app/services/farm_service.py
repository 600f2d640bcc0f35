"""Farm creation, membership queries and owner-only member management."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

import structlog
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.models.enums import MemberRoleEnum
from app.models.farm import Farm, FarmMember
from app.services.events import EventBus

logger = structlog.get_logger("nimbo.farms")


class FarmService:
	"""Farm CRUD plus the read-modify-write rules for changing membership."""

	def __init__(self, db: AsyncSession, redis_client: Redis | None = None):
		self.db = db
		self.events = EventBus(redis_client)

	# ── Pure membership rules ───────────────────────────────────────────────

	@staticmethod
	def ensure_owner(farm: Farm, actor_id: uuid.UUID) -> None:
		if farm.owner_id != actor_id:
			raise PermissionError("Only the farm owner can manage members")

	@staticmethod
	def check_role_change(
		farm: Farm,
		actor_id: uuid.UUID,
		target_id: uuid.UUID,
		new_role: MemberRoleEnum,
	) -> FarmMember:
		FarmService.ensure_owner(farm, actor_id)
		member = farm.member_for(target_id)
		if member is None:
			raise LookupError(f"User {target_id} is not a member of farm {farm.id}")
		if target_id == farm.owner_id:
			raise ValueError("The owner's role cannot be changed")
		if new_role == MemberRoleEnum.owner:
			raise ValueError("Ownership cannot be granted through a role change")
		return member

	@staticmethod
	def check_removal(farm: Farm, actor_id: uuid.UUID, target_id: uuid.UUID) -> FarmMember:
		FarmService.ensure_owner(farm, actor_id)
		if target_id == farm.owner_id:
			raise ValueError("The owner cannot be removed from the farm")
		member = farm.member_for(target_id)
		if member is None:
			raise LookupError(f"User {target_id} is not a member of farm {farm.id}")
		return member

	# ── Queries ─────────────────────────────────────────────────────────────

	async def get_farm(self, farm_id: uuid.UUID) -> Farm:
		row = await self.db.execute(select(Farm).where(Farm.id == farm_id))
		farm = row.scalar_one_or_none()
		if farm is None:
			raise LookupError(f"farm {farm_id} not found")
		return farm

	async def lock_farm(self, farm_id: uuid.UUID) -> Farm:
		"""Load the farm row ``FOR UPDATE`` with its members refreshed from the database."""
		stmt = (
			select(Farm)
			.where(Farm.id == farm_id)
			.with_for_update()
			.execution_options(populate_existing=True)
		)
		row = await self.db.execute(stmt)
		farm = row.scalar_one_or_none()
		if farm is None:
			raise LookupError(f"farm {farm_id} not found")
		return farm

	async def list_farms_for_user(self, user_id: uuid.UUID) -> list[Farm]:
		"""Farms the user belongs to, oldest first."""
		stmt = (
			select(Farm)
			.join(FarmMember, FarmMember.farm_id == Farm.id)
			.where(FarmMember.user_id == user_id)
			.order_by(Farm.created_at.asc(), Farm.id.asc())
		)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().unique().all())

	async def list_farm_ids_for_user(self, user_id: uuid.UUID) -> Sequence[uuid.UUID]:
		stmt = (
			select(Farm.id)
			.join(FarmMember, FarmMember.farm_id == Farm.id)
			.where(FarmMember.user_id == user_id)
			.order_by(Farm.created_at.asc(), Farm.id.asc())
		)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	# ── Writes ──────────────────────────────────────────────────────────────

	async def create_farm(self, owner: User, name: str) -> Farm:
		cleaned = name.strip()
		if not cleaned:
			raise ValueError("Farm name is required")

		farm = Farm(name=cleaned, owner_id=owner.id, owner_email=owner.email)
		farm.members.append(
			FarmMember(
				user_id=owner.id,
				email=owner.email,
				display_name=owner.display_name,
				role=MemberRoleEnum.owner,
			)
		)
		self.db.add(farm)
		await self.db.flush()
		await self.db.refresh(farm)
		logger.info("farm_created", farm_id=str(farm.id), owner_id=str(owner.id))
		return farm

	async def change_member_role(
		self,
		farm_id: uuid.UUID,
		actor_id: uuid.UUID,
		target_id: uuid.UUID,
		new_role: MemberRoleEnum,
	) -> Farm:
		farm = await self.lock_farm(farm_id)
		member = self.check_role_change(farm, actor_id, target_id, new_role)
		member.role = new_role
		await self.db.flush()
		await self.events.publish_farm(
			farm_id,
			"member.role_changed",
			user_id=str(target_id),
			role=new_role.value,
		)
		return farm

	async def remove_member(self, farm_id: uuid.UUID, actor_id: uuid.UUID, target_id: uuid.UUID) -> Farm:
		farm = await self.lock_farm(farm_id)
		member = self.check_removal(farm, actor_id, target_id)
		farm.members.remove(member)
		await self.db.flush()
		await self.events.publish_farm(farm_id, "member.removed", user_id=str(target_id))
		logger.info("farm_member_removed", farm_id=str(farm_id), user_id=str(target_id))
		return farm
