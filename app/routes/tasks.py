"""Farm task routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import FarmAccess, get_farm_access
from app.database import get_db
from app.schemas.task import TaskCreate, TaskListRead, TaskRead, TaskUpdate
from app.services.task_service import TaskService

router = APIRouter(prefix="/farms/{farm_id}/tasks", tags=["tasks"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, PermissionError):
		return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="task failure")


@router.get("", response_model=TaskListRead)
async def list_tasks(
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> TaskListRead:
	try:
		tasks = await TaskService(db).list_tasks(access.farm_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return TaskListRead(items=[TaskRead.model_validate(task) for task in tasks])


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
	payload: TaskCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> TaskRead:
	service = TaskService(db, getattr(request.app.state, "redis", None))
	try:
		access.ensure_writer()
		task = await service.create_task(access.farm_id, payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return TaskRead.model_validate(task)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
	task_id: uuid.UUID,
	payload: TaskUpdate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> TaskRead:
	service = TaskService(db, getattr(request.app.state, "redis", None))
	try:
		access.ensure_writer()
		task = await service.update_task(access.farm_id, task_id, payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return TaskRead.model_validate(task)


@router.post("/{task_id}/toggle", response_model=TaskRead)
async def toggle_task(
	task_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> TaskRead:
	service = TaskService(db, getattr(request.app.state, "redis", None))
	try:
		access.ensure_writer()
		task = await service.toggle_task(access.farm_id, task_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return TaskRead.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
	task_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> Response:
	service = TaskService(db, getattr(request.app.state, "redis", None))
	try:
		access.ensure_writer()
		await service.delete_task(access.farm_id, task_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return Response(status_code=status.HTTP_204_NO_CONTENT)
