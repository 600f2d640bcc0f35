"""Farm task scheduling."""

from __future__ import annotations

import uuid

from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.records import Task
from app.schemas.task import TaskCreate, TaskUpdate
from app.services.events import EventBus
from app.services.normalizer import utc_noon


def _clean_tag(tag: str | None) -> str | None:
	if tag is None:
		return None
	return tag.strip() or None


class TaskService:
	def __init__(self, db: AsyncSession, redis_client: Redis | None = None):
		self.db = db
		self.events = EventBus(redis_client)

	async def list_tasks(self, farm_id: uuid.UUID) -> list[Task]:
		stmt = select(Task).where(Task.farm_id == farm_id).order_by(Task.due_on.asc(), Task.created_at.asc())
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def get_task(self, farm_id: uuid.UUID, task_id: uuid.UUID) -> Task:
		row = await self.db.execute(select(Task).where(Task.id == task_id, Task.farm_id == farm_id))
		task = row.scalar_one_or_none()
		if task is None:
			raise LookupError(f"task {task_id} not found")
		return task

	async def create_task(self, farm_id: uuid.UUID, payload: TaskCreate) -> Task:
		task = Task(
			farm_id=farm_id,
			category=payload.category,
			description=payload.description.strip(),
			due_on=utc_noon(payload.due_on),
			completed=False,
			sheep_tag=_clean_tag(payload.sheep_tag),
		)
		self.db.add(task)
		await self.db.flush()
		await self.db.refresh(task)
		await self.events.publish_farm(farm_id, "task.created", task_id=str(task.id))
		return task

	async def update_task(self, farm_id: uuid.UUID, task_id: uuid.UUID, payload: TaskUpdate) -> Task:
		task = await self.get_task(farm_id, task_id)
		changes = payload.model_dump(exclude_unset=True)
		if changes.get("category") is not None:
			task.category = changes["category"]
		if changes.get("description") is not None:
			task.description = changes["description"].strip()
		if changes.get("due_on") is not None:
			task.due_on = utc_noon(changes["due_on"])
		if changes.get("completed") is not None:
			task.completed = changes["completed"]
		if "sheep_tag" in changes:
			task.sheep_tag = _clean_tag(changes["sheep_tag"])
		await self.db.flush()
		await self.events.publish_farm(farm_id, "task.updated", task_id=str(task.id))
		return task

	async def toggle_task(self, farm_id: uuid.UUID, task_id: uuid.UUID) -> Task:
		task = await self.get_task(farm_id, task_id)
		task.completed = not task.completed
		await self.db.flush()
		await self.events.publish_farm(farm_id, "task.updated", task_id=str(task.id), completed=task.completed)
		return task

	async def delete_task(self, farm_id: uuid.UUID, task_id: uuid.UUID) -> None:
		task = await self.get_task(farm_id, task_id)
		await self.db.delete(task)
		await self.db.flush()
		await self.events.publish_farm(farm_id, "task.deleted", task_id=str(task_id))
