"""Per-user preferences kept in Redis: saved location and selected farm.

Keys::

    prefs:{user_id}:location       JSON {"lat": float, "lon": float}
    prefs:{user_id}:selected_farm  farm UUID string

Stored values are untrusted; anything unreadable is treated as "no value".
"""

from __future__ import annotations

import json
import math
import re
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from redis.asyncio import Redis

logger = structlog.get_logger("nimbo.preferences")

_NUMBER = r"(-?\d+(?:\.\d+)?)"
_AT_PATTERN = re.compile(rf"@{_NUMBER},{_NUMBER}")
_QUERY_PATTERN = re.compile(rf"q={_NUMBER},{_NUMBER}")
_PAIR_PATTERN = re.compile(rf"{_NUMBER},\s*{_NUMBER}")


@dataclass(frozen=True, slots=True)
class Coordinates:
	lat: float
	lon: float

	def as_dict(self) -> dict[str, float]:
		return {"lat": self.lat, "lon": self.lon}


def _valid(lat: float, lon: float) -> bool:
	return math.isfinite(lat) and math.isfinite(lon) and -90 <= lat <= 90 and -180 <= lon <= 180


def validate_coordinates(lat: float, lon: float) -> Coordinates:
	if not _valid(lat, lon):
		raise ValueError("Latitude must be within [-90, 90] and longitude within [-180, 180]")
	return Coordinates(lat=float(lat), lon=float(lon))


def extract_coords_from_text(text: str) -> Coordinates:
	"""Pull coordinates from a maps link (``@lat,lon`` or ``q=lat,lon``) or a bare "lat, lon"."""
	trimmed = text.strip()
	for pattern in (_AT_PATTERN, _QUERY_PATTERN, _PAIR_PATTERN):
		match = pattern.search(trimmed)
		if match is not None:
			return validate_coordinates(float(match.group(1)), float(match.group(2)))
	raise ValueError("Could not find coordinates in the given text")


def parse_location(raw: str | bytes | None) -> Coordinates | None:
	if raw is None:
		return None
	try:
		data: Any = json.loads(raw)
	except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
		return None
	if not isinstance(data, dict):
		return None
	lat, lon = data.get("lat"), data.get("lon")
	if isinstance(lat, bool) or isinstance(lon, bool):
		return None
	if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
		return None
	if not _valid(lat, lon):
		return None
	return Coordinates(lat=float(lat), lon=float(lon))


def resolve_selected_farm(stored: uuid.UUID | None, farm_ids: Sequence[uuid.UUID]) -> uuid.UUID | None:
	"""Keep the stored farm while the user still belongs to it, else fall back to the first farm."""
	if not farm_ids:
		return None
	if stored is not None and stored in farm_ids:
		return stored
	return farm_ids[0]


class PreferenceStore:
	def __init__(self, redis_client: Redis | None, user_id: uuid.UUID):
		self.redis_client = redis_client
		self.user_id = user_id

	def _key(self, name: str) -> str:
		return f"prefs:{self.user_id}:{name}"

	async def read_location(self) -> Coordinates | None:
		if self.redis_client is None:
			return None
		return parse_location(await self.redis_client.get(self._key("location")))

	async def save_location(self, coords: Coordinates) -> None:
		if self.redis_client is None:
			logger.warning("preference_store_unavailable", user_id=str(self.user_id), key="location")
			return
		await self.redis_client.set(self._key("location"), json.dumps(coords.as_dict()))

	async def clear_location(self) -> None:
		if self.redis_client is None:
			return
		await self.redis_client.delete(self._key("location"))

	async def read_selected_farm(self) -> uuid.UUID | None:
		if self.redis_client is None:
			return None
		raw = await self.redis_client.get(self._key("selected_farm"))
		if raw is None:
			return None
		if isinstance(raw, bytes):
			raw = raw.decode("utf-8", errors="ignore")
		try:
			return uuid.UUID(str(raw))
		except ValueError:
			return None

	async def save_selected_farm(self, farm_id: uuid.UUID | None) -> None:
		if self.redis_client is None:
			logger.warning("preference_store_unavailable", user_id=str(self.user_id), key="selected_farm")
			return
		if farm_id is None:
			await self.redis_client.delete(self._key("selected_farm"))
			return
		await self.redis_client.set(self._key("selected_farm"), str(farm_id))
