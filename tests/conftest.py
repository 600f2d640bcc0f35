"""Shared pytest fixtures: async test client, fake DB session, fake Redis, farm access."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.auth.dependencies import FarmAccess, get_current_user, get_farm_access
from app.auth.jwt import create_access_token
from app.database import get_db
from app.main import app
from app.models.enums import MemberRoleEnum, UserRoleEnum


class FakeResult:
	"""Minimal stand-in for a SQLAlchemy ``Result``."""

	def __init__(self, value: Any = None, rows: list[Any] | None = None) -> None:
		self.value = value
		self.rows = rows if rows is not None else ([] if value is None else [value])

	def scalar_one_or_none(self) -> Any:
		return self.value

	def scalar_one(self) -> Any:
		return self.value

	def one(self) -> Any:
		return self.value

	def scalars(self) -> FakeResult:
		return self

	def unique(self) -> FakeResult:
		return self

	def all(self) -> list[Any]:
		return list(self.rows)


class FakeAsyncSession:
	def __init__(self) -> None:
		self.commit = AsyncMock()
		self.rollback = AsyncMock()
		self.close = AsyncMock()
		self.execute = AsyncMock(return_value=FakeResult())
		self.flush = AsyncMock()
		self.refresh = AsyncMock()
		self.delete = AsyncMock()
		self.add = MagicMock()
		self.add_all = MagicMock()

	def queue(self, *results: FakeResult) -> None:
		"""Make successive ``execute`` calls return ``results`` in order."""
		self.execute.side_effect = list(results)


class FakePubSub:
	def __init__(self, payloads: list[dict[str, Any]]) -> None:
		self.payloads = payloads
		self.index = 0
		self.subscribed_channel: str | None = None
		self.unsubscribed_channel: str | None = None
		self.closed = False

	async def subscribe(self, _channel: str) -> None:
		self.subscribed_channel = _channel
		return None

	async def get_message(self, ignore_subscribe_messages: bool, timeout: float) -> dict[str, Any] | None:
		if self.index >= len(self.payloads):
			return None
		message = self.payloads[self.index]
		self.index += 1
		return message

	async def unsubscribe(self, _channel: str) -> None:
		self.unsubscribed_channel = _channel
		return None

	async def close(self) -> None:
		self.closed = True
		return None


class FakeRedis:
	def __init__(self, payloads: list[dict[str, Any]] | None = None) -> None:
		self.payloads = payloads or []
		self.store: dict[str, str] = {}
		self.publish = AsyncMock()
		self.setex = AsyncMock()
		self.get = AsyncMock(side_effect=self._get)
		self.set = AsyncMock(side_effect=self._set)
		self.delete = AsyncMock(side_effect=self._delete)
		self._counter: dict[str, int] = {}
		self.incr = AsyncMock(side_effect=self._incr)
		self.expire = AsyncMock(return_value=True)
		self.last_pubsub: FakePubSub | None = None

	async def _get(self, key: str) -> str | None:
		return self.store.get(key)

	async def _set(self, key: str, value: str) -> bool:
		self.store[key] = value
		return True

	async def _delete(self, key: str) -> int:
		return 1 if self.store.pop(key, None) is not None else 0

	async def _incr(self, key: str) -> int:
		value = self._counter.get(key, 0) + 1
		self._counter[key] = value
		return value

	def pubsub(self) -> FakePubSub:
		self.last_pubsub = FakePubSub(self.payloads)
		return self.last_pubsub

	def reset_counters(self) -> None:
		self._counter.clear()


@dataclass
class AccessState:
	"""Role the ``client`` fixture grants the current user in any addressed farm."""

	role: MemberRoleEnum = MemberRoleEnum.owner
	farm: Any = None
	granted: list[FarmAccess] = field(default_factory=list)


def make_user(**overrides: Any) -> SimpleNamespace:
	values: dict[str, Any] = {
		"id": uuid.uuid4(),
		"email": "productor@test.local",
		"display_name": "Productor",
		"role": UserRoleEnum.user,
		"is_approved": True,
		"is_active": True,
		"created_at": datetime.now(UTC),
	}
	values.update(overrides)
	return SimpleNamespace(**values)


def make_member(user: Any, role: MemberRoleEnum) -> SimpleNamespace:
	return SimpleNamespace(
		user_id=user.id,
		email=user.email,
		display_name=user.display_name,
		role=role,
	)


class FarmStub(SimpleNamespace):
	"""Farm stand-in with the ``member_ids`` / ``member_for`` helpers of the ORM model."""

	@property
	def member_ids(self) -> list[uuid.UUID]:
		return [member.user_id for member in self.members]

	def member_for(self, user_id: uuid.UUID) -> Any:
		for member in self.members:
			if member.user_id == user_id:
				return member
		return None


def make_farm_stub(owner: Any, farm_id: uuid.UUID | None = None, name: str = "La Esperanza") -> FarmStub:
	now = datetime.now(UTC)
	return FarmStub(
		id=farm_id or uuid.uuid4(),
		name=name,
		owner_id=owner.id,
		owner_email=owner.email,
		members=[make_member(owner, MemberRoleEnum.owner)],
		created_at=now,
		updated_at=now,
	)


@pytest.fixture
def fake_db_session() -> FakeAsyncSession:
	"""A lightweight async-session stub for dependency overrides in API tests."""
	return FakeAsyncSession()


@pytest.fixture
def fake_redis() -> FakeRedis:
	"""Reusable fake Redis client with async publish, key-value and pubsub behavior."""
	return FakeRedis()


@pytest.fixture
def current_user() -> SimpleNamespace:
	return make_user()


@pytest.fixture
def access_state() -> AccessState:
	return AccessState()


@pytest.fixture
async def client(
	fake_db_session: FakeAsyncSession,
	fake_redis: FakeRedis,
	current_user: SimpleNamespace,
	access_state: AccessState,
) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with lifespan disabled and DB, user and farm access mocked."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	async def override_current_user() -> Any:
		return current_user

	async def override_farm_access(farm_id: uuid.UUID) -> FarmAccess:
		farm = access_state.farm or make_farm_stub(current_user, farm_id)
		access = FarmAccess(farm=farm, user=current_user, role=access_state.role)
		access_state.granted.append(access)
		return access

	app.dependency_overrides[get_db] = override_get_db
	app.dependency_overrides[get_current_user] = override_current_user
	app.dependency_overrides[get_farm_access] = override_farm_access
	original_lifespan = app.router.lifespan_context
	original_redis = getattr(app.state, "redis", None)

	@asynccontextmanager
	async def noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
		yield

	app.router.lifespan_context = noop_lifespan
	app.state.redis = fake_redis

	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://test") as test_client:
		yield test_client

	app.state.redis = original_redis
	app.router.lifespan_context = original_lifespan
	app.dependency_overrides.clear()


@pytest.fixture
async def auth_client(fake_db_session: FakeAsyncSession) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with DB override only (real auth dependencies active)."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	app.dependency_overrides[get_db] = override_get_db
	original_lifespan = app.router.lifespan_context
	original_redis = getattr(app.state, "redis", None)

	@asynccontextmanager
	async def noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
		yield

	app.router.lifespan_context = noop_lifespan
	app.state.redis = None

	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://test") as test_client:
		yield test_client

	app.state.redis = original_redis
	app.router.lifespan_context = original_lifespan
	app.dependency_overrides.clear()


@pytest.fixture
def auth_user_id() -> uuid.UUID:
	return uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def access_token(auth_user_id: uuid.UUID) -> str:
	return create_access_token(str(auth_user_id), expires_minutes=30)


@pytest.fixture
def now_utc() -> datetime:
	return datetime.now(UTC)


@pytest.fixture
def fake_result() -> type[FakeResult]:
	"""The ``FakeResult`` class, for queueing ``execute`` results in service tests."""
	return FakeResult


@pytest.fixture
def farm_factory() -> Any:
	"""Build farm stubs exposing ``members`` and ``member_for`` like the ORM model."""
	return make_farm_stub


@pytest.fixture
def user_factory() -> Any:
	return make_user
