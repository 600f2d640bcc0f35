"""Rainfall record routes, including bulk file import."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import FarmAccess, get_farm_access
from app.config import get_settings
from app.database import get_db
from app.schemas.rainfall import (
	ImportReceipt,
	RainfallCreate,
	RainfallListRead,
	RainfallRead,
	RainfallStats,
)
from app.services.import_service import ImportService
from app.services.rainfall_service import RainfallService

router = APIRouter(prefix="/farms/{farm_id}/rainfall", tags=["rainfall"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, PermissionError):
		return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="rainfall failure")


@router.get("", response_model=RainfallListRead)
async def list_rainfall(
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> RainfallListRead:
	try:
		records = await RainfallService(db).list_records(access.farm_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return RainfallListRead(items=[RainfallRead.model_validate(record) for record in records])


@router.post("", response_model=RainfallRead, status_code=status.HTTP_201_CREATED)
async def create_rainfall(
	payload: RainfallCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> RainfallRead:
	service = RainfallService(db, getattr(request.app.state, "redis", None))
	try:
		access.ensure_writer()
		record = await service.create_record(access.farm_id, payload.recorded_on, payload.amount_mm)
	except Exception as exc:
		raise _map_error(exc) from exc
	return RainfallRead.model_validate(record)


@router.get("/stats", response_model=RainfallStats)
async def rainfall_stats(
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> RainfallStats:
	try:
		return await RainfallService(db).stats(access.farm_id, datetime.now(UTC))
	except Exception as exc:
		raise _map_error(exc) from exc


@router.post("/import", response_model=ImportReceipt, status_code=status.HTTP_201_CREATED)
async def import_rainfall(
	request: Request,
	file: UploadFile = File(...),
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> ImportReceipt:
	service = ImportService(db, getattr(request.app.state, "redis", None))
	max_bytes = get_settings().import_max_bytes
	try:
		access.ensure_writer()
		data = await file.read(max_bytes + 1)
		return await service.import_rainfall(access.farm_id, file.filename or "", data, max_bytes)
	except Exception as exc:
		raise _map_error(exc) from exc
	finally:
		await file.close()


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rainfall(
	record_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> Response:
	service = RainfallService(db, getattr(request.app.state, "redis", None))
	try:
		access.ensure_writer()
		await service.delete_record(access.farm_id, record_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return Response(status_code=status.HTTP_204_NO_CONTENT)
