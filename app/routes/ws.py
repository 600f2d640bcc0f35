"""WebSocket live feeds: per-farm changes and the caller's invitations."""

from __future__ import annotations

import asyncio
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from sqlalchemy import select

from app.auth.jwt import AuthError, decode_token, subject_user_id
from app.auth.models import User
from app.database import async_session_factory
from app.models.enums import UserRoleEnum
from app.models.farm import FarmMember
from app.services.events import EventBus, farm_channel, invitation_channel

router = APIRouter(tags=["websocket"])


async def _authenticate_token(token: str) -> User | None:
	try:
		user_id = subject_user_id(decode_token(token, expected_type="access"))
	except AuthError:
		return None
	async with async_session_factory() as session:
		row = await session.execute(select(User).where(User.id == user_id))
		user = row.scalar_one_or_none()
	if user is None or not user.is_active:
		return None
	if not (user.is_approved or user.role == UserRoleEnum.admin):
		return None
	return user


async def _is_member(farm_id: uuid.UUID, user_id: uuid.UUID) -> bool:
	async with async_session_factory() as session:
		row = await session.execute(
			select(FarmMember.id).where(FarmMember.farm_id == farm_id, FarmMember.user_id == user_id)
		)
		return row.scalar_one_or_none() is not None


async def _reject(websocket: WebSocket, error: str, code: int = 1008) -> None:
	await websocket.send_json({"error": error})
	await websocket.close(code=code)


async def _user_from_query(websocket: WebSocket) -> User | None:
	token = websocket.query_params.get("token")
	if token is None or not token.strip():
		await _reject(websocket, "auth_required")
		return None
	user = await _authenticate_token(token.strip())
	if user is None:
		await _reject(websocket, "auth_invalid")
		return None
	return user


async def _pump(websocket: WebSocket, channel: str) -> None:
	"""Forward every message on ``channel`` until the client goes away."""
	redis_client = getattr(websocket.app.state, "redis", None)
	if redis_client is None:
		await _reject(websocket, "redis_unavailable", code=1011)
		return

	subscription = await EventBus(redis_client).subscribe(channel)
	try:
		while True:
			message = await subscription.get_message(timeout=1.0)
			if isinstance(message, dict):
				await websocket.send_json(message)
			elif isinstance(message, str):
				await websocket.send_text(message)
			await asyncio.sleep(0.05)
	except WebSocketDisconnect:
		return
	finally:
		await subscription.unsubscribe()


@router.websocket("/ws/invitations/live")
async def ws_invitations_feed(websocket: WebSocket) -> None:
	await websocket.accept()
	user = await _user_from_query(websocket)
	if user is None:
		return
	await _pump(websocket, invitation_channel(user.email))


@router.websocket("/ws/{farm_id}/live")
async def ws_farm_feed(websocket: WebSocket, farm_id: str) -> None:
	await websocket.accept()
	try:
		farm_uuid = uuid.UUID(farm_id)
	except ValueError:
		await _reject(websocket, "invalid_farm_id")
		return

	user = await _user_from_query(websocket)
	if user is None:
		return

	if not await _is_member(farm_uuid, user.id):
		await _reject(websocket, "not_a_member")
		return

	await _pump(websocket, farm_channel(farm_uuid))
