"""Saved-location preference routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.auth.dependencies import get_approved_user
from app.auth.models import User
from app.schemas.preferences import LocationRead, LocationUpdate
from app.services.preferences import (
	PreferenceStore,
	extract_coords_from_text,
	validate_coordinates,
)

router = APIRouter(prefix="/preferences", tags=["preferences"])


def _store(request: Request, user: User) -> PreferenceStore:
	return PreferenceStore(getattr(request.app.state, "redis", None), user.id)


@router.get("/location", response_model=LocationRead)
async def read_location(
	request: Request,
	current_user: User = Depends(get_approved_user),
) -> LocationRead:
	coords = await _store(request, current_user).read_location()
	if coords is None:
		return LocationRead()
	return LocationRead(lat=coords.lat, lon=coords.lon, configured=True)


@router.put("/location", response_model=LocationRead)
async def save_location(
	payload: LocationUpdate,
	request: Request,
	current_user: User = Depends(get_approved_user),
) -> LocationRead:
	try:
		if payload.lat is not None and payload.lon is not None:
			coords = validate_coordinates(payload.lat, payload.lon)
		else:
			coords = extract_coords_from_text(payload.text or "")
	except ValueError as exc:
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

	await _store(request, current_user).save_location(coords)
	return LocationRead(lat=coords.lat, lon=coords.lon, configured=True)


@router.delete("/location", status_code=status.HTTP_204_NO_CONTENT)
async def clear_location(
	request: Request,
	current_user: User = Depends(get_approved_user),
) -> Response:
	await _store(request, current_user).clear_location()
	return Response(status_code=status.HTTP_204_NO_CONTENT)
