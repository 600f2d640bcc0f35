"""OpenWeatherMap client: current conditions, daily forecast and rain outlook."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from app.config import Settings, get_settings
from app.schemas.weather import (
	CurrentWeatherRead,
	ForecastEntry,
	ForecastRead,
	RainDay,
	RainProjection,
)

logger = structlog.get_logger("nimbo.weather")

# The 5-day forecast comes in 3-hour steps; every 8th entry is one per day.
FORECAST_STRIDE = 8
FORECAST_DAYS = 5
RAIN_SUMMARY_SIZE = 3


class WeatherProviderError(Exception):
	"""The upstream weather provider failed or is not configured."""


def downsample_forecast(items: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
	return list(items[::FORECAST_STRIDE][:FORECAST_DAYS])


def _first_weather(item: dict[str, Any]) -> dict[str, Any]:
	weather = item.get("weather")
	if isinstance(weather, list) and weather and isinstance(weather[0], dict):
		return weather[0]
	return {}


def to_forecast_entry(item: dict[str, Any]) -> ForecastEntry:
	weather = _first_weather(item)
	main = item.get("main") or {}
	return ForecastEntry(
		at=datetime.fromtimestamp(int(item.get("dt", 0)), tz=UTC),
		temperature=float(main.get("temp", 0.0)),
		description=str(weather.get("description", "")),
		icon=str(weather.get("icon", "")),
		pop=float(item.get("pop") or 0.0),
	)


def rain_projection(entries: Sequence[ForecastEntry]) -> RainProjection:
	"""Most likely rainy day, average chance across rainy days and the top three."""
	rainy = [entry for entry in entries if entry.pop > 0]
	if not rainy:
		return RainProjection(has_rain=False)

	def _day(entry: ForecastEntry) -> RainDay:
		return RainDay(at=entry.at, chance=round(entry.pop * 100), description=entry.description)

	highest = rainy[0]
	for entry in rainy[1:]:
		if entry.pop > highest.pop:
			highest = entry
	ranked = sorted(rainy, key=lambda entry: entry.pop, reverse=True)
	return RainProjection(
		has_rain=True,
		top_day=_day(highest),
		average_chance=round(sum(entry.pop for entry in rainy) / len(rainy) * 100),
		summary=[_day(entry) for entry in ranked[:RAIN_SUMMARY_SIZE]],
	)


class WeatherService:
	def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
		self.settings = settings or get_settings()
		self.transport = transport

	async def _get(self, path: str, lat: float, lon: float) -> dict[str, Any]:
		if not self.settings.openweather_api_key:
			raise WeatherProviderError("Weather provider is not configured")

		params = {
			"lat": lat,
			"lon": lon,
			"appid": self.settings.openweather_api_key,
			"units": self.settings.openweather_units,
			"lang": self.settings.openweather_lang,
		}
		url = f"{self.settings.openweather_base_url.rstrip('/')}/{path}"
		try:
			async with httpx.AsyncClient(
				timeout=self.settings.weather_timeout_seconds,
				transport=self.transport,
			) as client:
				response = await client.get(url, params=params)
				payload = response.json()
		except (httpx.HTTPError, ValueError) as exc:
			logger.warning("weather_request_failed", path=path, error=str(exc))
			raise WeatherProviderError("Could not reach the weather provider") from exc

		if response.status_code >= 400:
			message = payload.get("message") if isinstance(payload, dict) else None
			logger.warning("weather_provider_error", path=path, status_code=response.status_code, message=message)
			raise WeatherProviderError(message or "Weather provider returned an error")
		if not isinstance(payload, dict):
			raise WeatherProviderError("Unexpected weather provider response")
		return payload

	async def current(self, lat: float, lon: float) -> CurrentWeatherRead:
		payload = await self._get("weather", lat, lon)
		main = payload.get("main") or {}
		wind = payload.get("wind") or {}
		weather = _first_weather(payload)
		return CurrentWeatherRead(
			lat=lat,
			lon=lon,
			city=str(payload.get("name") or "Ubicación configurada"),
			temperature=float(main.get("temp", 0.0)),
			feels_like=float(main.get("feels_like", 0.0)),
			temp_min=float(main.get("temp_min", 0.0)),
			temp_max=float(main.get("temp_max", 0.0)),
			humidity=int(main.get("humidity", 0)),
			pressure=int(main.get("pressure", 0)),
			wind_kmh=round(float(wind.get("speed", 0.0)) * 3.6, 1),
			description=str(weather.get("description", "")),
			icon=str(weather.get("icon", "")),
		)

	async def forecast(self, lat: float, lon: float) -> ForecastRead:
		payload = await self._get("forecast", lat, lon)
		items = payload.get("list")
		if not isinstance(items, list):
			raise WeatherProviderError("Forecast response has no entries")
		entries = [to_forecast_entry(item) for item in downsample_forecast(items)]
		return ForecastRead(lat=lat, lon=lon, entries=entries, rain=rain_projection(entries))
