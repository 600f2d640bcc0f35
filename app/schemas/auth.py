"""Pydantic schemas for sign-up, login and profile endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.enums import UserRoleEnum


class SignupRequest(BaseModel):
	email: EmailStr
	password: str = Field(min_length=6, max_length=128)
	display_name: str = Field(default="", max_length=255)


class LoginRequest(BaseModel):
	email: EmailStr
	password: str = Field(min_length=1, max_length=128)


class RefreshRequest(BaseModel):
	refresh_token: str = Field(min_length=1)


class TokenResponse(BaseModel):
	access_token: str
	refresh_token: str | None = None
	token_type: str = "bearer"


class ProfileUpdate(BaseModel):
	display_name: str = Field(max_length=255)


class UserRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	email: str
	display_name: str
	role: UserRoleEnum
	is_approved: bool
	created_at: datetime
