"""Rainfall records: manual entry, listing, deletion and summary statistics."""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Sequence
from datetime import date, datetime

from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import RainfallSourceEnum
from app.models.records import RainfallRecord
from app.schemas.rainfall import MonthlyTotal, RainfallStats
from app.services.events import EventBus
from app.services.normalizer import utc_noon


def _round1(value: float) -> float:
	return round(value, 1)


def summarize(records: Sequence[RainfallRecord], today: date) -> RainfallStats:
	"""Current-month figures plus the per-month series, rounded to one decimal.

	Average, maximum and day count cover only the current month of ``today``.
	"""
	if not records:
		return RainfallStats()

	this_month = [
		float(record.amount_mm)
		for record in records
		if record.recorded_on.year == today.year and record.recorded_on.month == today.month
	]

	per_month: dict[str, float] = defaultdict(float)
	for record in records:
		per_month[record.recorded_on.strftime("%Y-%m")] += float(record.amount_mm)
	monthly = [MonthlyTotal(month=key, total_mm=_round1(per_month[key])) for key in sorted(per_month)]

	return RainfallStats(
		month_total_mm=_round1(sum(this_month)),
		average_mm=_round1(sum(this_month) / len(this_month)) if this_month else 0.0,
		max_mm=_round1(max(this_month)) if this_month else 0.0,
		rainy_days=len(this_month),
		monthly=monthly,
		monthly_average_mm=_round1(sum(per_month.values()) / len(per_month)),
	)


class RainfallService:
	def __init__(self, db: AsyncSession, redis_client: Redis | None = None):
		self.db = db
		self.events = EventBus(redis_client)

	async def list_records(self, farm_id: uuid.UUID) -> list[RainfallRecord]:
		stmt = (
			select(RainfallRecord)
			.where(RainfallRecord.farm_id == farm_id)
			.order_by(RainfallRecord.recorded_on.desc(), RainfallRecord.created_at.desc())
		)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def create_record(self, farm_id: uuid.UUID, recorded_on: date, amount_mm: float) -> RainfallRecord:
		if amount_mm < 0:
			raise ValueError("Rainfall amount cannot be negative")
		record = RainfallRecord(
			farm_id=farm_id,
			recorded_on=utc_noon(recorded_on),
			amount_mm=amount_mm,
			source=RainfallSourceEnum.manual,
		)
		self.db.add(record)
		await self.db.flush()
		await self.db.refresh(record)
		await self.events.publish_farm(farm_id, "rainfall.created", record_id=str(record.id))
		return record

	async def delete_record(self, farm_id: uuid.UUID, record_id: uuid.UUID) -> None:
		row = await self.db.execute(
			select(RainfallRecord).where(
				RainfallRecord.id == record_id,
				RainfallRecord.farm_id == farm_id,
			)
		)
		record = row.scalar_one_or_none()
		if record is None:
			raise LookupError(f"rainfall record {record_id} not found")
		await self.db.delete(record)
		await self.db.flush()
		await self.events.publish_farm(farm_id, "rainfall.deleted", record_id=str(record_id))

	async def stats(self, farm_id: uuid.UUID, now: datetime) -> RainfallStats:
		return summarize(await self.list_records(farm_id), now.date())
