"""Pydantic schemas for sheep, weights, history and genealogy."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import LifecycleStateEnum, SheepSexEnum


class SheepCreate(BaseModel):
	tag: str = Field(max_length=64)
	birth_date: date | None = None
	sex: SheepSexEnum = SheepSexEnum.female
	breed: str = Field(default="", max_length=100)
	mother_tag: str = Field(default="", max_length=64)
	father_tag: str = Field(default="", max_length=64)
	weight_kg: float | None = Field(default=None, gt=0, allow_inf_nan=False)
	pregnant: bool = False
	last_birth_on: date | None = None
	last_insemination_on: date | None = None
	expected_birth_on: date | None = None


class SheepUpdate(BaseModel):
	birth_date: date | None = None
	sex: SheepSexEnum | None = None
	breed: str | None = Field(default=None, max_length=100)
	mother_tag: str | None = Field(default=None, max_length=64)
	father_tag: str | None = Field(default=None, max_length=64)
	weight_kg: float | None = Field(default=None, gt=0, allow_inf_nan=False)
	pregnant: bool | None = None
	last_birth_on: date | None = None
	last_insemination_on: date | None = None
	expected_birth_on: date | None = None


class WeightCreate(BaseModel):
	observed_on: date
	value_kg: float = Field(gt=0, allow_inf_nan=False)


class WeightRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	observed_on: datetime
	value_kg: float


class SheepRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	farm_id: uuid.UUID
	tag: str
	birth_date: datetime | None = None
	sex: SheepSexEnum
	breed: str
	mother_tag: str
	father_tag: str
	lifecycle_state: LifecycleStateEnum
	pregnant: bool
	last_birth_on: datetime | None = None
	last_insemination_on: datetime | None = None
	expected_birth_on: datetime | None = None
	weights: list[WeightRead] = Field(default_factory=list)
	latest_weight: float | None = None
	created_at: datetime
	updated_at: datetime


class SheepListRead(BaseModel):
	items: list[SheepRead]


class HistoryCreate(BaseModel):
	tag: str = Field(min_length=1, max_length=64)
	occurred_on: date
	title: str = Field(min_length=1, max_length=255)
	detail: str = ""


class HistoryRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	sheep_id: uuid.UUID
	tag: str
	title: str
	detail: str
	occurred_on: datetime


class HistoryListRead(BaseModel):
	items: list[HistoryRead]


class RelativeRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	tag: str
	breed: str
	lifecycle_state: LifecycleStateEnum


class GenealogyRead(BaseModel):
	tag: str
	mother: RelativeRead | None = None
	father: RelativeRead | None = None
	maternal_grandmother: RelativeRead | None = None
	maternal_grandfather: RelativeRead | None = None
	paternal_grandmother: RelativeRead | None = None
	paternal_grandfather: RelativeRead | None = None
