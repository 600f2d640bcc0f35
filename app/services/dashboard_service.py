"""Per-farm dashboard summary."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import LifecycleStateEnum
from app.models.livestock import Sheep
from app.models.records import RainfallRecord, Task
from app.schemas.farm import DashboardRead, UpcomingTask

UPCOMING_LIMIT = 3


def summarize_pending(tasks: Sequence[Task], now: datetime) -> tuple[int, list[UpcomingTask]]:
	"""Count pending tasks due on today's UTC date and pick the earliest few."""
	due_today = sum(1 for task in tasks if task.due_on.date() == now.date())
	ordered = sorted(tasks, key=lambda task: task.due_on)
	upcoming = [
		UpcomingTask(
			id=task.id,
			category=task.category,
			description=task.description,
			due_on=task.due_on,
			sheep_tag=task.sheep_tag,
		)
		for task in ordered[:UPCOMING_LIMIT]
	]
	return due_today, upcoming


class DashboardService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def summary(self, farm_id: uuid.UUID, now: datetime) -> DashboardRead:
		active = Sheep.lifecycle_state == LifecycleStateEnum.active
		sheep_row = await self.db.execute(
			select(
				func.count(Sheep.id),
				func.count(Sheep.id).filter(Sheep.pregnant.is_(True)),
			).where(Sheep.farm_id == farm_id, active)
		)
		active_count, pregnant_count = sheep_row.one()

		month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
		rain_row = await self.db.execute(
			select(func.coalesce(func.sum(RainfallRecord.amount_mm), 0.0)).where(
				RainfallRecord.farm_id == farm_id,
				RainfallRecord.recorded_on >= month_start,
			)
		)
		month_rain = float(rain_row.scalar_one())

		task_rows = await self.db.execute(
			select(Task).where(Task.farm_id == farm_id, Task.completed.is_(False))
		)
		due_today, upcoming = summarize_pending(list(task_rows.scalars().all()), now)

		return DashboardRead(
			farm_id=farm_id,
			active_sheep=int(active_count or 0),
			pregnant_sheep=int(pregnant_count or 0),
			rainfall_month_mm=round(month_rain, 1),
			tasks_due_today=due_today,
			upcoming_tasks=upcoming,
		)
