"""Response schemas for current conditions, forecast and rain projection."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CurrentWeatherRead(BaseModel):
	lat: float
	lon: float
	city: str
	temperature: float
	feels_like: float
	temp_min: float
	temp_max: float
	humidity: int
	pressure: int
	wind_kmh: float
	description: str = ""
	icon: str = ""


class ForecastEntry(BaseModel):
	at: datetime
	temperature: float
	description: str = ""
	icon: str = ""
	pop: float = 0.0


class RainDay(BaseModel):
	at: datetime
	chance: int
	description: str = ""


class RainProjection(BaseModel):
	has_rain: bool
	top_day: RainDay | None = None
	average_chance: int | None = None
	summary: list[RainDay] = Field(default_factory=list)


class ForecastRead(BaseModel):
	lat: float
	lon: float
	entries: list[ForecastEntry]
	rain: RainProjection
