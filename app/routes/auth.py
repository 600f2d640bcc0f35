"""Account routes: sign-up, login, token refresh, profile and approval."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, require_role
from app.auth.jwt import AuthError, create_access_token, decode_token, issue_token_pair, subject_user_id
from app.auth.models import User
from app.database import get_db
from app.models.enums import UserRoleEnum
from app.schemas.auth import (
	LoginRequest,
	ProfileUpdate,
	RefreshRequest,
	SignupRequest,
	TokenResponse,
	UserRead,
)
from app.services.email_service import send_welcome_quietly
from app.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, AuthError):
		return HTTPException(
			status_code=exc.status_code,
			detail={"error": exc.code, "message": exc.detail},
		)
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="account failure")


def _tokens(user: User) -> TokenResponse:
	pair = issue_token_pair(user.id)
	return TokenResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(
	payload: SignupRequest,
	background_tasks: BackgroundTasks,
	db: AsyncSession = Depends(get_db),
) -> TokenResponse:
	try:
		user = await UserService(db).signup(payload.email, payload.password, payload.display_name)
	except Exception as exc:
		raise _map_error(exc) from exc
	background_tasks.add_task(send_welcome_quietly, user.email, user.display_name)
	return _tokens(user)


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
	try:
		user = await UserService(db).authenticate(payload.email, payload.password)
	except Exception as exc:
		raise _map_error(exc) from exc
	return _tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(payload: RefreshRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
	try:
		claims = decode_token(payload.refresh_token, expected_type="refresh")
		user = await UserService(db).get_user(subject_user_id(claims))
		if not user.is_active:
			raise AuthError(code="user_invalid", detail="User is not active")
	except LookupError as exc:
		raise _map_error(AuthError(code="user_invalid", detail="User is not active")) from exc
	except Exception as exc:
		raise _map_error(exc) from exc
	return TokenResponse(access_token=create_access_token(str(user.id)))


@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)) -> UserRead:
	return UserRead.model_validate(current_user)


@router.patch("/me", response_model=UserRead)
async def update_me(
	payload: ProfileUpdate,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_current_user),
) -> UserRead:
	try:
		user = await UserService(db).update_profile(current_user, payload.display_name)
	except Exception as exc:
		raise _map_error(exc) from exc
	return UserRead.model_validate(user)


@router.post("/users/{user_id}/approve", response_model=UserRead)
async def approve_user(
	user_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
	_admin: User = Depends(require_role(UserRoleEnum.admin)),
) -> UserRead:
	try:
		user = await UserService(db).approve(user_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return UserRead.model_validate(user)
