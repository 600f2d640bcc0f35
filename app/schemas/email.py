"""Schemas for the welcome e-mail endpoint."""

from __future__ import annotations

from pydantic import BaseModel


class WelcomeEmailRequest(BaseModel):
	email: str | None = None
	name: str | None = None


class EmailSentResponse(BaseModel):
	ok: bool = True
