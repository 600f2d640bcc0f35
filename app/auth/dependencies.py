"""Authentication dependencies: get_current_user, get_approved_user, farm access."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import AuthError, decode_token, subject_user_id
from app.auth.models import User
from app.database import get_db
from app.models.enums import MemberRoleEnum, UserRoleEnum
from app.models.farm import Farm

bearer_scheme = HTTPBearer(auto_error=False)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

WRITER_ROLES = (MemberRoleEnum.owner, MemberRoleEnum.editor)

_FARM_PATH = re.compile(r"/api/v1/farms/([0-9a-fA-F\-]{36})(?:/|$)")


def _raise_auth(exc: AuthError) -> HTTPException:
	return HTTPException(
		status_code=exc.status_code,
		detail={"error": exc.code, "message": exc.detail},
	)


def extract_request_farm_id(request: Request) -> uuid.UUID | None:
	token = request.path_params.get("farm_id")
	if token is None:
		match = _FARM_PATH.search(request.url.path)
		if match is None:
			return None
		token = match.group(1)
	try:
		return uuid.UUID(str(token))
	except ValueError:
		return None


def extract_identity_hint(request: Request) -> str:
	auth_header = request.headers.get("authorization", "")
	if auth_header.lower().startswith("bearer "):
		return "jwt"
	return "anonymous"


async def _resolve_user_from_token(
	db: AsyncSession,
	credentials: HTTPAuthorizationCredentials | None,
) -> User:
	if credentials is None or credentials.scheme.lower() != "bearer":
		raise _raise_auth(AuthError(code="auth_required", detail="Bearer token is required"))

	try:
		payload = decode_token(credentials.credentials, expected_type="access")
		user_id = subject_user_id(payload)
	except AuthError as exc:
		raise _raise_auth(exc) from exc

	row = await db.execute(select(User).where(User.id == user_id))
	user = row.scalar_one_or_none()
	if user is None or not user.is_active:
		raise _raise_auth(AuthError(code="user_invalid", detail="User is not active"))
	return user


async def get_current_user(
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> User:
	credentials = await bearer_scheme(request)
	return await _resolve_user_from_token(db, credentials)


async def get_approved_user(current_user: User = Depends(get_current_user)) -> User:
	"""Reject accounts an admin has not approved yet."""
	if current_user.is_approved or current_user.role == UserRoleEnum.admin:
		return current_user
	raise HTTPException(
		status_code=status.HTTP_403_FORBIDDEN,
		detail={"error": "approval_pending", "message": "Account is awaiting approval"},
	)


def require_role(*allowed: UserRoleEnum) -> Callable[[User], User]:
	allowed_set = set(allowed)

	async def dependency(current_user: User = Depends(get_current_user)) -> User:
		if current_user.role not in allowed_set:
			raise HTTPException(
				status_code=status.HTTP_403_FORBIDDEN,
				detail={"error": "forbidden", "message": "Insufficient role"},
			)
		return current_user

	return dependency


# ── Farm-scoped access ──────────────────────────────────────────────────────


@dataclass(slots=True)
class FarmAccess:
	"""The caller's membership in the farm addressed by the request path."""

	farm: Farm
	user: User
	role: MemberRoleEnum

	@property
	def farm_id(self) -> uuid.UUID:
		return self.farm.id

	@property
	def can_write(self) -> bool:
		return self.role in WRITER_ROLES

	def ensure_writer(self) -> None:
		if not self.can_write:
			raise PermissionError(f"Role '{self.role}' may not perform this action")


async def get_farm_access(
	farm_id: uuid.UUID,
	current_user: User = Depends(get_approved_user),
	db: AsyncSession = Depends(get_db),
) -> FarmAccess:
	row = await db.execute(select(Farm).where(Farm.id == farm_id))
	farm = row.scalar_one_or_none()
	if farm is None:
		raise HTTPException(
			status_code=status.HTTP_404_NOT_FOUND,
			detail={"error": "farm_not_found", "message": f"Farm {farm_id} not found"},
		)

	member = farm.member_for(current_user.id)
	if member is None:
		raise HTTPException(
			status_code=status.HTTP_403_FORBIDDEN,
			detail={"error": "not_a_member", "message": "You are not a member of this farm"},
		)
	return FarmAccess(farm=farm, user=current_user, role=member.role)
