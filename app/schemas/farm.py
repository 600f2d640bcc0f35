"""Pydantic request/response schemas for farms, members and the dashboard."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import MemberRoleEnum, TaskCategoryEnum


class FarmCreate(BaseModel):
	name: str = Field(max_length=255)


class MemberRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	user_id: uuid.UUID
	email: str
	display_name: str
	role: MemberRoleEnum


class MemberRoleUpdate(BaseModel):
	role: MemberRoleEnum


class FarmRead(BaseModel):
	id: uuid.UUID
	name: str
	owner_id: uuid.UUID
	owner_email: str
	member_ids: list[uuid.UUID] = Field(default_factory=list)
	members: dict[str, MemberRead] = Field(default_factory=dict)
	my_role: MemberRoleEnum | None = None
	created_at: datetime
	updated_at: datetime


class FarmListRead(BaseModel):
	items: list[FarmRead]


class SelectedFarmRead(BaseModel):
	farm_id: uuid.UUID | None = None


class SelectFarmRequest(BaseModel):
	farm_id: uuid.UUID


class UpcomingTask(BaseModel):
	id: uuid.UUID
	category: TaskCategoryEnum
	description: str
	due_on: datetime
	sheep_tag: str | None = None


class DashboardRead(BaseModel):
	farm_id: uuid.UUID
	active_sheep: int = 0
	pregnant_sheep: int = 0
	rainfall_month_mm: float = 0.0
	tasks_due_today: int = 0
	upcoming_tasks: list[UpcomingTask] = Field(default_factory=list)
