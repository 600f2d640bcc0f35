"""Farm, membership, selection and dashboard routes."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import FarmAccess, get_approved_user, get_farm_access
from app.auth.models import User
from app.database import get_db
from app.schemas.farm import (
	DashboardRead,
	FarmCreate,
	FarmListRead,
	FarmRead,
	MemberRead,
	MemberRoleUpdate,
	SelectedFarmRead,
	SelectFarmRequest,
)
from app.services.dashboard_service import DashboardService
from app.services.farm_service import FarmService
from app.services.preferences import PreferenceStore, resolve_selected_farm

router = APIRouter(prefix="/farms", tags=["farms"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, PermissionError):
		return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected farm service failure",
	)


def _redis(request: Request) -> Any:
	return getattr(request.app.state, "redis", None)


def _to_farm_read(farm: Any, viewer_id: uuid.UUID | None = None) -> FarmRead:
	members = {
		str(member.user_id): MemberRead(
			user_id=member.user_id,
			email=member.email,
			display_name=member.display_name,
			role=member.role,
		)
		for member in farm.members
	}
	my_role = None
	if viewer_id is not None and str(viewer_id) in members:
		my_role = members[str(viewer_id)].role
	return FarmRead(
		id=farm.id,
		name=farm.name,
		owner_id=farm.owner_id,
		owner_email=farm.owner_email,
		member_ids=farm.member_ids,
		members=members,
		my_role=my_role,
		created_at=farm.created_at,
		updated_at=farm.updated_at,
	)


@router.post("", response_model=FarmRead, status_code=status.HTTP_201_CREATED)
async def create_farm(
	payload: FarmCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_approved_user),
) -> FarmRead:
	service = FarmService(db, _redis(request))
	try:
		farm = await service.create_farm(current_user, payload.name)
	except Exception as exc:
		raise _map_error(exc) from exc
	await PreferenceStore(_redis(request), current_user.id).save_selected_farm(farm.id)
	return _to_farm_read(farm, current_user.id)


@router.get("", response_model=FarmListRead)
async def list_farms(
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_approved_user),
) -> FarmListRead:
	service = FarmService(db)
	try:
		farms = await service.list_farms_for_user(current_user.id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return FarmListRead(items=[_to_farm_read(farm, current_user.id) for farm in farms])


@router.get("/selected", response_model=SelectedFarmRead)
async def get_selected_farm(
	request: Request,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_approved_user),
) -> SelectedFarmRead:
	store = PreferenceStore(_redis(request), current_user.id)
	farm_ids = await FarmService(db).list_farm_ids_for_user(current_user.id)
	stored = await store.read_selected_farm()
	selected = resolve_selected_farm(stored, farm_ids)
	if selected != stored:
		await store.save_selected_farm(selected)
	return SelectedFarmRead(farm_id=selected)


@router.put("/selected", response_model=SelectedFarmRead)
async def select_farm(
	payload: SelectFarmRequest,
	request: Request,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_approved_user),
) -> SelectedFarmRead:
	farm_ids = await FarmService(db).list_farm_ids_for_user(current_user.id)
	if payload.farm_id not in farm_ids:
		raise HTTPException(
			status_code=status.HTTP_403_FORBIDDEN,
			detail={"error": "not_a_member", "message": "You are not a member of this farm"},
		)
	await PreferenceStore(_redis(request), current_user.id).save_selected_farm(payload.farm_id)
	return SelectedFarmRead(farm_id=payload.farm_id)


@router.get("/{farm_id}", response_model=FarmRead)
async def get_farm(access: FarmAccess = Depends(get_farm_access)) -> FarmRead:
	return _to_farm_read(access.farm, access.user.id)


@router.get("/{farm_id}/dashboard", response_model=DashboardRead)
async def get_dashboard(
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> DashboardRead:
	try:
		return await DashboardService(db).summary(access.farm_id, datetime.now(UTC))
	except Exception as exc:
		raise _map_error(exc) from exc


@router.patch("/{farm_id}/members/{user_id}", response_model=FarmRead)
async def change_member_role(
	user_id: uuid.UUID,
	payload: MemberRoleUpdate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> FarmRead:
	service = FarmService(db, _redis(request))
	try:
		farm = await service.change_member_role(access.farm_id, access.user.id, user_id, payload.role)
	except Exception as exc:
		raise _map_error(exc) from exc
	return _to_farm_read(farm, access.user.id)


@router.delete("/{farm_id}/members/{user_id}", response_model=FarmRead)
async def remove_member(
	user_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> FarmRead:
	service = FarmService(db, _redis(request))
	try:
		farm = await service.remove_member(access.farm_id, access.user.id, user_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return _to_farm_read(farm, access.user.id)
