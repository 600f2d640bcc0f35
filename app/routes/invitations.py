"""Invitation routes: owners invite, invitees list, accept or decline."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import FarmAccess, get_approved_user, get_farm_access
from app.auth.models import User
from app.database import get_db
from app.schemas.invitation import InvitationCreate, InvitationListRead, InvitationRead
from app.services.invitation_service import InvitationService
from app.services.preferences import PreferenceStore

router = APIRouter(tags=["invitations"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, PermissionError):
		return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected invitation failure",
	)


@router.post(
	"/farms/{farm_id}/invitations",
	response_model=InvitationRead,
	status_code=status.HTTP_201_CREATED,
)
async def invite_member(
	payload: InvitationCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
	access: FarmAccess = Depends(get_farm_access),
) -> InvitationRead:
	service = InvitationService(db, getattr(request.app.state, "redis", None))
	try:
		invitation = await service.invite(access.farm_id, access.user, payload.email, payload.role)
	except Exception as exc:
		raise _map_error(exc) from exc
	return InvitationRead.model_validate(invitation)


@router.get("/invitations", response_model=InvitationListRead)
async def list_my_invitations(
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_approved_user),
) -> InvitationListRead:
	service = InvitationService(db)
	try:
		invitations = await service.list_pending(current_user)
	except Exception as exc:
		raise _map_error(exc) from exc
	return InvitationListRead(items=[InvitationRead.model_validate(item) for item in invitations])


@router.post("/invitations/{invitation_id}/accept", response_model=InvitationRead)
async def accept_invitation(
	invitation_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_approved_user),
) -> InvitationRead:
	redis_client = getattr(request.app.state, "redis", None)
	service = InvitationService(db, redis_client)
	try:
		invitation = await service.accept(invitation_id, current_user)
	except Exception as exc:
		raise _map_error(exc) from exc
	await PreferenceStore(redis_client, current_user.id).save_selected_farm(invitation.farm_id)
	return InvitationRead.model_validate(invitation)


@router.post("/invitations/{invitation_id}/decline", response_model=InvitationRead)
async def decline_invitation(
	invitation_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
	current_user: User = Depends(get_approved_user),
) -> InvitationRead:
	service = InvitationService(db, getattr(request.app.state, "redis", None))
	try:
		invitation = await service.decline(invitation_id, current_user)
	except Exception as exc:
		raise _map_error(exc) from exc
	return InvitationRead.model_validate(invitation)
