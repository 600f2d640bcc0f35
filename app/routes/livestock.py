"""Sheep registry routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import FarmAccess, get_farm_access
from app.database import get_db
from app.schemas.livestock import (
	GenealogyRead,
	HistoryCreate,
	HistoryListRead,
	HistoryRead,
	RelativeRead,
	SheepCreate,
	SheepListRead,
	SheepRead,
	SheepUpdate,
	WeightCreate,
)
from app.services.livestock_service import LivestockService

router = APIRouter(prefix="/farms/{farm_id}/sheep", tags=["livestock"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, PermissionError):
		return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="livestock failure")


def _service(request: Request, db: AsyncSession) -> LivestockService:
	return LivestockService(db, getattr(request.app.state, "redis", None))


@router.get("", response_model=SheepListRead)
async def list_sheep(
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> SheepListRead:
	try:
		herd = await _service(request, db).list_active(access.farm_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return SheepListRead(items=[SheepRead.model_validate(sheep) for sheep in herd])


@router.post("", response_model=SheepRead, status_code=status.HTTP_201_CREATED)
async def create_sheep(
	payload: SheepCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> SheepRead:
	try:
		access.ensure_writer()
		sheep = await _service(request, db).create_sheep(access.farm_id, payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return SheepRead.model_validate(sheep)


@router.get("/history", response_model=HistoryListRead)
async def list_history(
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> HistoryListRead:
	try:
		entries = await _service(request, db).list_history(access.farm_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return HistoryListRead(items=[HistoryRead.model_validate(entry) for entry in entries])


@router.post("/history", response_model=HistoryRead, status_code=status.HTTP_201_CREATED)
async def add_history(
	payload: HistoryCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> HistoryRead:
	try:
		access.ensure_writer()
		entry = await _service(request, db).add_history(access.farm_id, payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return HistoryRead.model_validate(entry)


@router.get("/{sheep_id}", response_model=SheepRead)
async def get_sheep(
	sheep_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> SheepRead:
	try:
		sheep = await _service(request, db).get_sheep(access.farm_id, sheep_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return SheepRead.model_validate(sheep)


@router.patch("/{sheep_id}", response_model=SheepRead)
async def update_sheep(
	sheep_id: uuid.UUID,
	payload: SheepUpdate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> SheepRead:
	try:
		access.ensure_writer()
		sheep = await _service(request, db).update_sheep(access.farm_id, sheep_id, payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return SheepRead.model_validate(sheep)


@router.post("/{sheep_id}/weights", response_model=SheepRead, status_code=status.HTTP_201_CREATED)
async def add_weight(
	sheep_id: uuid.UUID,
	payload: WeightCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> SheepRead:
	try:
		access.ensure_writer()
		sheep = await _service(request, db).add_weight(
			access.farm_id, sheep_id, payload.observed_on, payload.value_kg
		)
	except Exception as exc:
		raise _map_error(exc) from exc
	return SheepRead.model_validate(sheep)


@router.post("/{sheep_id}/archive", response_model=SheepRead)
async def archive_sheep(
	sheep_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> SheepRead:
	try:
		access.ensure_writer()
		sheep = await _service(request, db).archive_sheep(access.farm_id, sheep_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return SheepRead.model_validate(sheep)


@router.get("/{sheep_id}/history", response_model=HistoryListRead)
async def list_sheep_history(
	sheep_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> HistoryListRead:
	try:
		entries = await _service(request, db).list_history(access.farm_id, sheep_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return HistoryListRead(items=[HistoryRead.model_validate(entry) for entry in entries])


@router.get("/{sheep_id}/genealogy", response_model=GenealogyRead)
async def get_genealogy(
	sheep_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> GenealogyRead:
	try:
		sheep, relatives = await _service(request, db).genealogy(access.farm_id, sheep_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return GenealogyRead(
		tag=sheep.tag,
		**{
			name: RelativeRead.model_validate(relative) if relative is not None else None
			for name, relative in relatives.items()
		},
	)
