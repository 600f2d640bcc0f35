"""Pydantic schemas for farm invitations."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr

from app.models.enums import InvitationStatusEnum, MemberRoleEnum


class InvitationCreate(BaseModel):
	email: EmailStr
	role: MemberRoleEnum = MemberRoleEnum.editor


class InvitationRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	farm_id: uuid.UUID
	farm_name: str
	email: str
	role: MemberRoleEnum
	status: InvitationStatusEnum
	invited_by: uuid.UUID | None = None
	invited_by_email: str
	created_at: datetime
	responded_at: datetime | None = None


class InvitationListRead(BaseModel):
	items: list[InvitationRead]
