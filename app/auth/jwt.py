"""JWT issuance and validation for access / refresh tokens."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from jose import JWTError, jwt

from app.config import get_settings

TokenType = Literal["access", "refresh"]


@dataclass(slots=True)
class AuthError(Exception):
	"""Structured authentication error, rendered as ``{"error", "message"}`` at the edge."""

	code: str
	detail: str
	status_code: int = 401


@dataclass(slots=True)
class TokenPair:
	access_token: str
	refresh_token: str
	token_type: str = "bearer"


def _encode(subject: str, token_type: TokenType, ttl: timedelta) -> str:
	settings = get_settings()
	issued = datetime.now(UTC)
	claims: dict[str, Any] = {
		"sub": subject,
		"typ": token_type,
		"iat": int(issued.timestamp()),
		"exp": int((issued + ttl).timestamp()),
	}
	return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
	minutes = expires_minutes or get_settings().jwt_access_token_expire_minutes
	return _encode(subject, "access", timedelta(minutes=minutes))


def create_refresh_token(subject: str, expires_minutes: int | None = None) -> str:
	minutes = expires_minutes or get_settings().jwt_refresh_token_expire_minutes
	return _encode(subject, "refresh", timedelta(minutes=minutes))


def issue_token_pair(user_id: uuid.UUID) -> TokenPair:
	subject = str(user_id)
	return TokenPair(
		access_token=create_access_token(subject),
		refresh_token=create_refresh_token(subject),
	)


def decode_token(token: str, expected_type: TokenType | None = None) -> dict[str, Any]:
	"""Validate signature, subject, type and expiry; raise ``AuthError`` otherwise."""
	settings = get_settings()
	try:
		payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
	except JWTError as exc:
		raise AuthError(code="token_invalid", detail="Invalid authentication token") from exc

	subject = payload.get("sub")
	if not isinstance(subject, str) or not subject:
		raise AuthError(code="token_invalid", detail="Token subject is missing")

	if expected_type is not None and payload.get("typ") != expected_type:
		raise AuthError(code="token_type_invalid", detail=f"Expected {expected_type} token")

	expires_at = payload.get("exp")
	if not isinstance(expires_at, int):
		raise AuthError(code="token_invalid", detail="Token expiration is missing")
	if datetime.now(UTC).timestamp() >= expires_at:
		raise AuthError(code="token_expired", detail="Authentication token has expired")

	return payload


def subject_user_id(payload: dict[str, Any]) -> uuid.UUID:
	try:
		return uuid.UUID(str(payload["sub"]))
	except (KeyError, ValueError) as exc:
		raise AuthError(code="token_invalid", detail="Token subject is invalid") from exc
