"""Weather routes backed by the caller's saved location."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.auth.dependencies import get_approved_user
from app.auth.models import User
from app.schemas.weather import CurrentWeatherRead, ForecastRead
from app.services.preferences import Coordinates, PreferenceStore, validate_coordinates
from app.services.weather_service import WeatherProviderError, WeatherService

router = APIRouter(prefix="/weather", tags=["weather"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, WeatherProviderError):
		return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="weather failure")


async def _resolve_coordinates(
	request: Request,
	user: User,
	lat: float | None,
	lon: float | None,
) -> Coordinates:
	if lat is not None and lon is not None:
		return validate_coordinates(lat, lon)
	stored = await PreferenceStore(getattr(request.app.state, "redis", None), user.id).read_location()
	if stored is None:
		raise ValueError("No location configured. Save a location or pass lat and lon")
	return stored


@router.get("/current", response_model=CurrentWeatherRead)
async def current_weather(
	request: Request,
	lat: float | None = Query(default=None),
	lon: float | None = Query(default=None),
	current_user: User = Depends(get_approved_user),
) -> CurrentWeatherRead:
	try:
		coords = await _resolve_coordinates(request, current_user, lat, lon)
		return await WeatherService().current(coords.lat, coords.lon)
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/forecast", response_model=ForecastRead)
async def weather_forecast(
	request: Request,
	lat: float | None = Query(default=None),
	lon: float | None = Query(default=None),
	current_user: User = Depends(get_approved_user),
) -> ForecastRead:
	try:
		coords = await _resolve_coordinates(request, current_user, lat, lon)
		return await WeatherService().forecast(coords.lat, coords.lon)
	except Exception as exc:
		raise _map_error(exc) from exc
