"""Sheep registry: tags, weights, archive, history and genealogy lookups."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, date, datetime

import structlog
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import LifecycleStateEnum
from app.models.livestock import Sheep, SheepHistoryEntry, SheepWeight
from app.schemas.livestock import HistoryCreate, SheepCreate, SheepUpdate
from app.services.events import EventBus
from app.services.normalizer import utc_noon

logger = structlog.get_logger("nimbo.livestock")

_DATE_FIELDS = ("birth_date", "last_birth_on", "last_insemination_on", "expected_birth_on")
_TEXT_FIELDS = ("breed", "mother_tag", "father_tag")


def _noon_or_none(value: date | None) -> datetime | None:
	return utc_noon(value) if value is not None else None


def find_by_tag(herd: Sequence[Sheep], tag: str | None) -> Sheep | None:
	"""Prefer the active sheep carrying ``tag``; fall back to an archived one."""
	if not tag:
		return None
	matches = [sheep for sheep in herd if str(sheep.tag) == str(tag)]
	for sheep in matches:
		if sheep.lifecycle_state == LifecycleStateEnum.active:
			return sheep
	return matches[0] if matches else None


def build_genealogy(sheep: Sheep, herd: Sequence[Sheep]) -> dict[str, Sheep | None]:
	"""Parents and grandparents resolved by tag; unknown tags map to ``None``."""
	mother = find_by_tag(herd, sheep.mother_tag)
	father = find_by_tag(herd, sheep.father_tag)
	return {
		"mother": mother,
		"father": father,
		"maternal_grandmother": find_by_tag(herd, mother.mother_tag) if mother else None,
		"maternal_grandfather": find_by_tag(herd, mother.father_tag) if mother else None,
		"paternal_grandmother": find_by_tag(herd, father.mother_tag) if father else None,
		"paternal_grandfather": find_by_tag(herd, father.father_tag) if father else None,
	}


class LivestockService:
	def __init__(self, db: AsyncSession, redis_client: Redis | None = None):
		self.db = db
		self.events = EventBus(redis_client)

	# ── Lookups ─────────────────────────────────────────────────────────────

	async def list_active(self, farm_id: uuid.UUID) -> list[Sheep]:
		stmt = (
			select(Sheep)
			.where(Sheep.farm_id == farm_id, Sheep.lifecycle_state == LifecycleStateEnum.active)
			.order_by(Sheep.tag.asc())
		)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def list_herd(self, farm_id: uuid.UUID) -> list[Sheep]:
		"""All sheep of the farm, archived included."""
		rows = await self.db.execute(select(Sheep).where(Sheep.farm_id == farm_id))
		return list(rows.scalars().all())

	async def get_sheep(self, farm_id: uuid.UUID, sheep_id: uuid.UUID) -> Sheep:
		row = await self.db.execute(select(Sheep).where(Sheep.id == sheep_id, Sheep.farm_id == farm_id))
		sheep = row.scalar_one_or_none()
		if sheep is None:
			raise LookupError(f"sheep {sheep_id} not found")
		return sheep

	async def get_active_by_tag(self, farm_id: uuid.UUID, tag: str) -> Sheep:
		stmt = select(Sheep).where(
			Sheep.farm_id == farm_id,
			Sheep.tag == tag.strip(),
			Sheep.lifecycle_state == LifecycleStateEnum.active,
		)
		row = await self.db.execute(stmt)
		sheep = row.scalar_one_or_none()
		if sheep is None:
			raise LookupError(f"No active sheep with tag '{tag.strip()}'")
		return sheep

	async def _ensure_tag_free(self, farm_id: uuid.UUID, tag: str) -> None:
		stmt = select(Sheep.id).where(
			Sheep.farm_id == farm_id,
			Sheep.tag == tag,
			Sheep.lifecycle_state == LifecycleStateEnum.active,
		)
		row = await self.db.execute(stmt)
		if row.scalar_one_or_none() is not None:
			raise ValueError(f"An active sheep with tag '{tag}' already exists")

	# ── Writes ──────────────────────────────────────────────────────────────

	async def create_sheep(self, farm_id: uuid.UUID, payload: SheepCreate) -> Sheep:
		tag = payload.tag.strip()
		if not tag:
			raise ValueError("Tag is required")
		await self._ensure_tag_free(farm_id, tag)

		sheep = Sheep(
			farm_id=farm_id,
			tag=tag,
			birth_date=_noon_or_none(payload.birth_date),
			sex=payload.sex,
			breed=payload.breed.strip(),
			mother_tag=payload.mother_tag.strip(),
			father_tag=payload.father_tag.strip(),
			pregnant=payload.pregnant,
			last_birth_on=_noon_or_none(payload.last_birth_on),
			last_insemination_on=_noon_or_none(payload.last_insemination_on),
			expected_birth_on=_noon_or_none(payload.expected_birth_on),
		)
		if payload.weight_kg is not None:
			sheep.weights.append(SheepWeight(observed_on=datetime.now(UTC), value_kg=payload.weight_kg))
		self.db.add(sheep)
		await self.db.flush()
		await self.db.refresh(sheep)
		await self.events.publish_farm(farm_id, "sheep.created", sheep_id=str(sheep.id), tag=tag)
		return sheep

	async def update_sheep(self, farm_id: uuid.UUID, sheep_id: uuid.UUID, payload: SheepUpdate) -> Sheep:
		sheep = await self.get_sheep(farm_id, sheep_id)
		if not sheep.is_active:
			raise ValueError("Archived sheep cannot be edited")

		changes = payload.model_dump(exclude_unset=True)
		weight = changes.pop("weight_kg", None)
		for field, value in changes.items():
			if field in _DATE_FIELDS:
				value = _noon_or_none(value)
			elif field in _TEXT_FIELDS:
				# null clears the text; the columns are NOT NULL
				value = (value or "").strip()
			elif value is None:
				continue
			setattr(sheep, field, value)

		if weight is not None and weight != sheep.latest_weight:
			sheep.weights.append(SheepWeight(observed_on=datetime.now(UTC), value_kg=weight))

		await self.db.flush()
		await self.events.publish_farm(farm_id, "sheep.updated", sheep_id=str(sheep.id))
		return sheep

	async def add_weight(self, farm_id: uuid.UUID, sheep_id: uuid.UUID, observed_on: date, value_kg: float) -> Sheep:
		if not value_kg > 0:
			raise ValueError("Weight must be greater than zero")
		sheep = await self.get_sheep(farm_id, sheep_id)
		if not sheep.is_active:
			raise ValueError("Archived sheep cannot receive new weights")
		sheep.weights.append(SheepWeight(observed_on=utc_noon(observed_on), value_kg=value_kg))
		sheep.weights.sort(key=lambda entry: entry.observed_on)
		await self.db.flush()
		await self.events.publish_farm(farm_id, "sheep.weighed", sheep_id=str(sheep.id))
		return sheep

	async def archive_sheep(self, farm_id: uuid.UUID, sheep_id: uuid.UUID) -> Sheep:
		sheep = await self.get_sheep(farm_id, sheep_id)
		sheep.lifecycle_state = LifecycleStateEnum.archived
		await self.db.flush()
		await self.events.publish_farm(farm_id, "sheep.archived", sheep_id=str(sheep.id))
		logger.info("sheep_archived", farm_id=str(farm_id), sheep_id=str(sheep.id), tag=sheep.tag)
		return sheep

	# ── History & genealogy ─────────────────────────────────────────────────

	async def add_history(self, farm_id: uuid.UUID, payload: HistoryCreate) -> SheepHistoryEntry:
		sheep = await self.get_active_by_tag(farm_id, payload.tag)
		entry = SheepHistoryEntry(
			farm_id=farm_id,
			sheep_id=sheep.id,
			tag=sheep.tag,
			title=payload.title.strip(),
			detail=payload.detail.strip(),
			occurred_on=utc_noon(payload.occurred_on),
		)
		self.db.add(entry)
		await self.db.flush()
		await self.db.refresh(entry)
		await self.events.publish_farm(farm_id, "sheep.history_added", sheep_id=str(sheep.id))
		return entry

	async def list_history(self, farm_id: uuid.UUID, sheep_id: uuid.UUID | None = None) -> list[SheepHistoryEntry]:
		stmt = select(SheepHistoryEntry).where(SheepHistoryEntry.farm_id == farm_id)
		if sheep_id is not None:
			stmt = stmt.where(SheepHistoryEntry.sheep_id == sheep_id)
		stmt = stmt.order_by(SheepHistoryEntry.occurred_on.desc(), SheepHistoryEntry.created_at.desc())
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def genealogy(self, farm_id: uuid.UUID, sheep_id: uuid.UUID) -> tuple[Sheep, dict[str, Sheep | None]]:
		sheep = await self.get_sheep(farm_id, sheep_id)
		herd = await self.list_herd(farm_id)
		return sheep, build_genealogy(sheep, herd)
