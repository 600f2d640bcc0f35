"""Invitation workflow: owner invites by e-mail, invitee accepts or declines.

Invitations move one way only, ``pending → accepted | declined``.  Accepting
writes the membership and the status change in the same transaction, with
both the invitation and the farm rows locked.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import structlog
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.models.enums import InvitationStatusEnum, MemberRoleEnum
from app.models.farm import Farm, FarmMember, Invitation
from app.services.events import EventBus, invitation_channel
from app.services.farm_service import FarmService

logger = structlog.get_logger("nimbo.invitations")

INVITABLE_ROLES = frozenset({MemberRoleEnum.editor, MemberRoleEnum.viewer})


def normalize_invite_email(raw: str) -> tuple[str, str]:
	"""Return ``(trimmed, lowercased)``; the lowercase form is the lookup key.

	Syntax is checked by ``EmailStr`` on ``InvitationCreate``.
	"""
	trimmed = raw.strip()
	return trimmed, trimmed.lower()


def ensure_respondable(invitation: Invitation, user: User) -> None:
	if invitation.email_lower != user.email.strip().lower():
		raise PermissionError("This invitation is addressed to a different account")
	if invitation.status != InvitationStatusEnum.pending:
		raise ValueError(f"Invitation was already {invitation.status.value}")


def apply_acceptance(farm: Farm, invitation: Invitation, user: User) -> FarmMember:
	"""Upsert the membership for ``user``; an existing owner keeps ownership."""
	role = invitation.role or MemberRoleEnum.editor
	member = farm.member_for(user.id)
	if member is None:
		member = FarmMember(
			user_id=user.id,
			email=user.email,
			display_name=user.display_name,
			role=role,
		)
		farm.members.append(member)
	elif member.role != MemberRoleEnum.owner:
		member.role = role
		member.email = user.email
		member.display_name = user.display_name
	return member


class InvitationService:
	def __init__(self, db: AsyncSession, redis_client: Redis | None = None):
		self.db = db
		self.events = EventBus(redis_client)
		self.farms = FarmService(db, redis_client)

	async def invite(
		self,
		farm_id: uuid.UUID,
		actor: User,
		email: str,
		role: MemberRoleEnum = MemberRoleEnum.editor,
	) -> Invitation:
		farm = await self.farms.lock_farm(farm_id)
		FarmService.ensure_owner(farm, actor.id)
		if role not in INVITABLE_ROLES:
			raise ValueError("Invitations can only grant the editor or viewer role")
		trimmed, lowered = normalize_invite_email(email)

		invitation = Invitation(
			farm_id=farm.id,
			farm_name=farm.name,
			email=trimmed,
			email_lower=lowered,
			role=role,
			status=InvitationStatusEnum.pending,
			invited_by=actor.id,
			invited_by_email=actor.email,
		)
		self.db.add(invitation)
		await self.db.flush()
		await self.db.refresh(invitation)

		await self.events.publish(
			invitation_channel(lowered),
			"invitation.created",
			{"invitation_id": str(invitation.id), "farm_id": str(farm.id), "farm_name": farm.name},
		)
		logger.info("invitation_created", farm_id=str(farm.id), invitation_id=str(invitation.id))
		return invitation

	async def list_pending(self, user: User) -> list[Invitation]:
		stmt = (
			select(Invitation)
			.where(
				Invitation.email_lower == user.email.strip().lower(),
				Invitation.status == InvitationStatusEnum.pending,
			)
			.order_by(Invitation.created_at.desc())
		)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def _lock_invitation(self, invitation_id: uuid.UUID) -> Invitation:
		stmt = (
			select(Invitation)
			.where(Invitation.id == invitation_id)
			.with_for_update()
			.execution_options(populate_existing=True)
		)
		row = await self.db.execute(stmt)
		invitation = row.scalar_one_or_none()
		if invitation is None:
			raise LookupError(f"invitation {invitation_id} not found")
		return invitation

	async def accept(self, invitation_id: uuid.UUID, user: User) -> Invitation:
		invitation = await self._lock_invitation(invitation_id)
		ensure_respondable(invitation, user)

		farm = await self.farms.lock_farm(invitation.farm_id)
		member = apply_acceptance(farm, invitation, user)
		invitation.status = InvitationStatusEnum.accepted
		invitation.responded_at = datetime.now(UTC)
		await self.db.flush()

		await self.events.publish(
			invitation_channel(invitation.email_lower),
			"invitation.accepted",
			{"invitation_id": str(invitation.id), "farm_id": str(farm.id)},
		)
		await self.events.publish_farm(
			farm.id,
			"member.added",
			user_id=str(user.id),
			role=member.role.value,
		)
		logger.info("invitation_accepted", invitation_id=str(invitation.id), user_id=str(user.id))
		return invitation

	async def decline(self, invitation_id: uuid.UUID, user: User) -> Invitation:
		invitation = await self._lock_invitation(invitation_id)
		ensure_respondable(invitation, user)
		invitation.status = InvitationStatusEnum.declined
		invitation.responded_at = datetime.now(UTC)
		await self.db.flush()

		await self.events.publish(
			invitation_channel(invitation.email_lower),
			"invitation.declined",
			{"invitation_id": str(invitation.id), "farm_id": str(invitation.farm_id)},
		)
		return invitation
