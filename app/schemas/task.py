"""Pydantic schemas for farm tasks."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import TaskCategoryEnum


class TaskCreate(BaseModel):
	category: TaskCategoryEnum
	description: str = ""
	due_on: date
	sheep_tag: str | None = Field(default=None, max_length=64)


class TaskUpdate(BaseModel):
	category: TaskCategoryEnum | None = None
	description: str | None = None
	due_on: date | None = None
	sheep_tag: str | None = Field(default=None, max_length=64)
	completed: bool | None = None


class TaskRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	farm_id: uuid.UUID
	category: TaskCategoryEnum
	description: str
	due_on: datetime
	completed: bool
	sheep_tag: str | None = None
	created_at: datetime


class TaskListRead(BaseModel):
	items: list[TaskRead]
