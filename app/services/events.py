"""Live-update channels over Redis pub/sub.

Writers call ``EventBus.publish`` after flushing; WebSocket handlers call
``EventBus.subscribe`` and poll the returned ``Subscription`` until the
client disconnects, then call ``unsubscribe()``.
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from typing import Any

import structlog
from redis.asyncio import Redis

logger = structlog.get_logger("nimbo.events")


def farm_channel(farm_id: uuid.UUID) -> str:
	return f"farm:{farm_id}:live"


def invitation_channel(email: str) -> str:
	return f"invitations:{email.strip().lower()}"


class Subscription:
	"""Handle over one subscribed channel; ``unsubscribe`` releases it."""

	def __init__(self, pubsub: Any, channel: str):
		self._pubsub = pubsub
		self.channel = channel
		self.closed = False

	async def get_message(self, timeout: float = 1.0) -> dict[str, Any] | str | None:
		message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=timeout)
		if message is None or message.get("type") != "message":
			return None
		data = message.get("data")
		if isinstance(data, bytes):
			data = data.decode("utf-8")
		if not isinstance(data, str):
			return None
		try:
			return json.loads(data)
		except json.JSONDecodeError:
			return data

	async def unsubscribe(self) -> None:
		if self.closed:
			return
		self.closed = True
		await self._pubsub.unsubscribe(self.channel)
		await self._pubsub.close()


class EventBus:
	def __init__(self, redis_client: Redis | None):
		self.redis_client = redis_client

	async def publish(self, channel: str, event_type: str, payload: dict[str, Any] | None = None) -> None:
		"""Fire-and-forget; a missing or failing Redis never fails the write."""
		if self.redis_client is None:
			return
		message = {
			"event_type": event_type,
			"published_at": datetime.now(UTC).isoformat(),
			**(payload or {}),
		}
		try:
			await self.redis_client.publish(channel, json.dumps(message, default=str))
		except Exception as exc:  # noqa: BLE001
			logger.warning("event_publish_failed", channel=channel, event_type=event_type, error=str(exc))

	async def publish_farm(self, farm_id: uuid.UUID, event_type: str, **payload: Any) -> None:
		await self.publish(farm_channel(farm_id), event_type, {"farm_id": str(farm_id), **payload})

	async def subscribe(self, channel: str) -> Subscription:
		if self.redis_client is None:
			raise RuntimeError("Redis is not available")
		pubsub = self.redis_client.pubsub()
		await pubsub.subscribe(channel)
		return Subscription(pubsub, channel)
