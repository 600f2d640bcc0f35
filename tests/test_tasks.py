from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from types import SimpleNamespace
from typing import Any
from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.models.enums import MemberRoleEnum, TaskCategoryEnum
from app.models.records import Task
from app.schemas.task import TaskCreate, TaskUpdate
from app.services.dashboard_service import summarize_pending
from app.services.task_service import TaskService


def _task(due_on: datetime, category: TaskCategoryEnum = TaskCategoryEnum.vaccination, **extra: Any) -> Task:
    values: dict[str, Any] = {
        "id": uuid4(),
        "farm_id": uuid4(),
        "category": category,
        "description": "Clostridial",
        "due_on": due_on,
        "completed": False,
        "sheep_tag": None,
        "created_at": datetime.now(UTC),
    }
    values.update(extra)
    return Task(**values)


@pytest.mark.asyncio
async def test_create_task_cleans_input(fake_db_session: Any, fake_redis: Any) -> None:
    farm_id = uuid4()
    payload = TaskCreate(
        category=TaskCategoryEnum.shearing,
        description="  Esquila general ",
        due_on=date(2024, 11, 2),
        sheep_tag="   ",
    )

    task = await TaskService(fake_db_session, fake_redis).create_task(farm_id, payload)

    assert task.description == "Esquila general"
    assert task.due_on == datetime(2024, 11, 2, 12, tzinfo=UTC)
    assert task.sheep_tag is None
    assert task.completed is False
    assert fake_redis.publish.await_args.args[0] == f"farm:{farm_id}:live"


@pytest.mark.asyncio
async def test_toggle_flips_completion(fake_db_session: Any, fake_result: Any) -> None:
    task = _task(datetime(2024, 11, 2, 12, tzinfo=UTC))
    fake_db_session.queue(fake_result(task), fake_result(task))
    service = TaskService(fake_db_session)

    await service.toggle_task(task.farm_id, task.id)
    assert task.completed is True
    await service.toggle_task(task.farm_id, task.id)
    assert task.completed is False


@pytest.mark.asyncio
async def test_update_task_only_touches_given_fields(fake_db_session: Any, fake_result: Any) -> None:
    task = _task(datetime(2024, 11, 2, 12, tzinfo=UTC), sheep_tag="1024")
    fake_db_session.queue(fake_result(task))

    await TaskService(fake_db_session).update_task(
        task.farm_id, task.id, TaskUpdate(due_on=date(2024, 11, 9), completed=True)
    )

    assert task.due_on == datetime(2024, 11, 9, 12, tzinfo=UTC)
    assert task.completed is True
    assert task.sheep_tag == "1024"
    assert task.category == TaskCategoryEnum.vaccination


@pytest.mark.asyncio
async def test_missing_task_is_lookup_error(fake_db_session: Any, fake_result: Any) -> None:
    fake_db_session.queue(fake_result(None))
    with pytest.raises(LookupError):
        await TaskService(fake_db_session).delete_task(uuid4(), uuid4())


def test_summarize_pending_counts_today_and_orders_upcoming() -> None:
    now = datetime(2024, 11, 2, 9, tzinfo=UTC)
    tasks = [
        _task(now + timedelta(days=3), TaskCategoryEnum.feeding),
        _task(now.replace(hour=12), TaskCategoryEnum.checkup),
        _task(now + timedelta(days=1), TaskCategoryEnum.deworming),
        _task(now - timedelta(days=2), TaskCategoryEnum.other),
    ]

    due_today, upcoming = summarize_pending(tasks, now)

    assert due_today == 1
    assert [item.category for item in upcoming] == [
        TaskCategoryEnum.other,
        TaskCategoryEnum.checkup,
        TaskCategoryEnum.deworming,
    ]


# ── Routes ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_task_route(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    farm_id = uuid4()

    async def fake_create(self: TaskService, _farm_id: Any, payload: TaskCreate) -> object:
        return SimpleNamespace(
            id=uuid4(),
            farm_id=_farm_id,
            category=payload.category,
            description=payload.description,
            due_on=datetime(2024, 11, 2, 12, tzinfo=UTC),
            completed=False,
            sheep_tag=payload.sheep_tag,
            created_at=datetime.now(UTC),
        )

    monkeypatch.setattr(TaskService, "create_task", fake_create)

    response = await client.post(
        f"/api/v1/farms/{farm_id}/tasks",
        json={"category": "expected_birth", "description": "Parto 1024", "due_on": "2024-11-02", "sheep_tag": "1024"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["category"] == "expected_birth"
    assert body["farm_id"] == str(farm_id)


@pytest.mark.asyncio
async def test_unknown_category_is_rejected(client: AsyncClient) -> None:
    response = await client.post(
        f"/api/v1/farms/{uuid4()}/tasks",
        json={"category": "milking", "due_on": "2024-11-02"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_viewer_cannot_toggle_or_delete(client: AsyncClient, access_state: Any) -> None:
    access_state.role = MemberRoleEnum.viewer
    farm_id, task_id = uuid4(), uuid4()

    toggled = await client.post(f"/api/v1/farms/{farm_id}/tasks/{task_id}/toggle")
    deleted = await client.delete(f"/api/v1/farms/{farm_id}/tasks/{task_id}")

    assert toggled.status_code == 403
    assert deleted.status_code == 403


@pytest.mark.asyncio
async def test_delete_task_route(client: AsyncClient, fake_db_session: Any, fake_result: Any) -> None:
    farm_id = uuid4()
    task = _task(datetime(2024, 11, 2, 12, tzinfo=UTC), farm_id=farm_id)
    fake_db_session.queue(fake_result(task))

    response = await client.delete(f"/api/v1/farms/{farm_id}/tasks/{task.id}")

    assert response.status_code == 204
    fake_db_session.delete.assert_awaited_once_with(task)
