"""Pydantic schemas for rainfall records, bulk import and statistics."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import RainfallSourceEnum


class RainfallCreate(BaseModel):
	recorded_on: date
	amount_mm: float = Field(ge=0, allow_inf_nan=False)


class RainfallRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	farm_id: uuid.UUID
	recorded_on: datetime
	amount_mm: float
	source: RainfallSourceEnum
	created_at: datetime


class RainfallListRead(BaseModel):
	items: list[RainfallRead]


class ImportReceipt(BaseModel):
	farm_id: uuid.UUID
	imported_count: int
	skipped_count: int = 0


class MonthlyTotal(BaseModel):
	month: str
	total_mm: float


class RainfallStats(BaseModel):
	month_total_mm: float = 0.0
	average_mm: float = 0.0
	max_mm: float = 0.0
	rainy_days: int = 0
	monthly: list[MonthlyTotal] = Field(default_factory=list)
	monthly_average_mm: float = 0.0
