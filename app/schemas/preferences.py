"""Schemas for the per-user location preference."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class LocationRead(BaseModel):
	lat: float | None = None
	lon: float | None = None
	configured: bool = False


class LocationUpdate(BaseModel):
	"""Either explicit ``lat``/``lon`` or free ``text`` (a maps link or "lat, lon")."""

	lat: float | None = Field(default=None, allow_inf_nan=False)
	lon: float | None = Field(default=None, allow_inf_nan=False)
	text: str | None = Field(default=None, max_length=2048)

	@model_validator(mode="after")
	def _one_source(self) -> LocationUpdate:
		has_pair = self.lat is not None and self.lon is not None
		if not has_pair and not (self.text and self.text.strip()):
			raise ValueError("Provide lat and lon, or a text location")
		return self
