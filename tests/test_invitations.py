from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import pytest
from httpx import AsyncClient
from pydantic import ValidationError

from app.auth.models import User
from app.models.enums import InvitationStatusEnum, MemberRoleEnum, UserRoleEnum
from app.models.farm import Farm, FarmMember, Invitation
from app.schemas.invitation import InvitationCreate
from app.services.invitation_service import (
    InvitationService,
    apply_acceptance,
    ensure_respondable,
    normalize_invite_email,
)


def _user(email: str) -> User:
    return User(
        id=uuid4(),
        email=email,
        hashed_password="x",
        display_name=email.split("@")[0].title(),
        role=UserRoleEnum.user,
        is_approved=True,
        is_active=True,
    )


def _farm(owner: User) -> Farm:
    farm = Farm(id=uuid4(), name="La Esperanza", owner_id=owner.id, owner_email=owner.email)
    farm.members.append(
        FarmMember(user_id=owner.id, email=owner.email, display_name=owner.display_name, role=MemberRoleEnum.owner)
    )
    return farm


def _invitation(farm: Farm, email: str, role: MemberRoleEnum = MemberRoleEnum.viewer) -> Invitation:
    return Invitation(
        id=uuid4(),
        farm_id=farm.id,
        farm_name=farm.name,
        email=email,
        email_lower=email.strip().lower(),
        role=role,
        status=InvitationStatusEnum.pending,
        invited_by=farm.owner_id,
        invited_by_email=farm.owner_email,
        created_at=datetime.now(UTC),
    )


def _members(farm: Farm) -> dict[Any, MemberRoleEnum]:
    return {member.user_id: member.role for member in farm.members}


def test_normalize_invite_email_keeps_raw_and_lowercase() -> None:
    assert normalize_invite_email("  Beto@Campo.AR ") == ("Beto@Campo.AR", "beto@campo.ar")


@pytest.mark.parametrize("raw", ["", "beto", "@campo.ar", "beto@", "be to@campo.ar"])
def test_invitation_payload_rejects_invalid_email(raw: str) -> None:
    with pytest.raises(ValidationError):
        InvitationCreate(email=raw, role=MemberRoleEnum.viewer)


def test_ensure_respondable_guards() -> None:
    owner, invitee = _user("ana@campo.ar"), _user("beto@campo.ar")
    invitation = _invitation(_farm(owner), "BETO@campo.ar")

    ensure_respondable(invitation, invitee)

    with pytest.raises(PermissionError):
        ensure_respondable(invitation, _user("caro@campo.ar"))

    invitation.status = InvitationStatusEnum.accepted
    with pytest.raises(ValueError, match="already accepted"):
        ensure_respondable(invitation, invitee)


def test_acceptance_keeps_an_existing_owner() -> None:
    owner = _user("ana@campo.ar")
    farm = _farm(owner)
    invitation = _invitation(farm, owner.email, MemberRoleEnum.editor)

    member = apply_acceptance(farm, invitation, owner)

    assert member.role == MemberRoleEnum.owner
    assert len(farm.members) == 1


def test_acceptance_updates_an_existing_member_role() -> None:
    owner, invitee = _user("ana@campo.ar"), _user("beto@campo.ar")
    farm = _farm(owner)
    farm.members.append(
        FarmMember(user_id=invitee.id, email=invitee.email, display_name="", role=MemberRoleEnum.viewer)
    )
    invitation = _invitation(farm, invitee.email, MemberRoleEnum.editor)

    apply_acceptance(farm, invitation, invitee)

    assert _members(farm)[invitee.id] == MemberRoleEnum.editor
    assert farm.member_for(invitee.id).display_name == "Beto"


@pytest.mark.asyncio
async def test_accept_viewer_invitation(fake_db_session: Any, fake_redis: Any, fake_result: Any) -> None:
    owner, invitee = _user("ana@campo.ar"), _user("beto@campo.ar")
    farm = _farm(owner)
    invitation = _invitation(farm, "Beto@Campo.ar", MemberRoleEnum.viewer)
    fake_db_session.queue(fake_result(invitation), fake_result(farm))

    result = await InvitationService(fake_db_session, fake_redis).accept(invitation.id, invitee)

    assert _members(farm)[invitee.id] == MemberRoleEnum.viewer
    assert result.status == InvitationStatusEnum.accepted
    assert result.responded_at is not None
    fake_db_session.flush.assert_awaited_once()

    channels = [call.args[0] for call in fake_redis.publish.await_args_list]
    assert channels == ["invitations:beto@campo.ar", f"farm:{farm.id}:live"]
    member_event = json.loads(fake_redis.publish.await_args_list[1].args[1])
    assert member_event["event_type"] == "member.added"
    assert member_event["role"] == "viewer"


@pytest.mark.asyncio
async def test_decline_leaves_members_unchanged(fake_db_session: Any, fake_redis: Any, fake_result: Any) -> None:
    owner, invitee = _user("ana@campo.ar"), _user("beto@campo.ar")
    farm = _farm(owner)
    before = _members(farm)
    invitation = _invitation(farm, invitee.email)
    fake_db_session.queue(fake_result(invitation))

    result = await InvitationService(fake_db_session, fake_redis).decline(invitation.id, invitee)

    assert result.status == InvitationStatusEnum.declined
    assert result.responded_at is not None
    assert _members(farm) == before
    assert fake_db_session.execute.await_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [InvitationStatusEnum.accepted, InvitationStatusEnum.declined])
async def test_double_response_is_rejected(
    fake_db_session: Any, fake_result: Any, status: InvitationStatusEnum
) -> None:
    owner, invitee = _user("ana@campo.ar"), _user("beto@campo.ar")
    farm = _farm(owner)
    invitation = _invitation(farm, invitee.email)
    invitation.status = status
    fake_db_session.queue(fake_result(invitation), fake_result(farm))

    with pytest.raises(ValueError):
        await InvitationService(fake_db_session).accept(invitation.id, invitee)

    assert invitee.id not in farm.member_ids
    fake_db_session.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_accept_unknown_invitation(fake_db_session: Any, fake_result: Any) -> None:
    fake_db_session.queue(fake_result(None))
    with pytest.raises(LookupError):
        await InvitationService(fake_db_session).accept(uuid4(), _user("beto@campo.ar"))


@pytest.mark.asyncio
async def test_invite_by_non_owner_fails(fake_db_session: Any, fake_result: Any) -> None:
    owner, editor = _user("ana@campo.ar"), _user("beto@campo.ar")
    farm = _farm(owner)
    farm.members.append(FarmMember(user_id=editor.id, email=editor.email, display_name="", role=MemberRoleEnum.editor))
    fake_db_session.queue(fake_result(farm))

    with pytest.raises(PermissionError):
        await InvitationService(fake_db_session).invite(farm.id, editor, "caro@campo.ar")
    fake_db_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_invite_cannot_grant_ownership(fake_db_session: Any, fake_result: Any) -> None:
    owner = _user("ana@campo.ar")
    farm = _farm(owner)
    fake_db_session.queue(fake_result(farm))

    with pytest.raises(ValueError):
        await InvitationService(fake_db_session).invite(farm.id, owner, "caro@campo.ar", MemberRoleEnum.owner)


@pytest.mark.asyncio
async def test_invite_stores_pending_invitation(fake_db_session: Any, fake_redis: Any, fake_result: Any) -> None:
    owner = _user("ana@campo.ar")
    farm = _farm(owner)
    fake_db_session.queue(fake_result(farm))

    invitation = await InvitationService(fake_db_session, fake_redis).invite(farm.id, owner, " Caro@Campo.AR ")

    assert invitation.email == "Caro@Campo.AR"
    assert invitation.email_lower == "caro@campo.ar"
    assert invitation.role == MemberRoleEnum.editor
    assert invitation.status == InvitationStatusEnum.pending
    assert invitation.farm_name == "La Esperanza"
    assert invitation.invited_by == owner.id
    fake_db_session.add.assert_called_once_with(invitation)
    assert fake_redis.publish.await_args.args[0] == "invitations:caro@campo.ar"


# ── Routes ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_accept_route_selects_the_farm(
    client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
    current_user: Any,
    fake_redis: Any,
) -> None:
    owner = _user("ana@campo.ar")
    invitation = _invitation(_farm(owner), current_user.email)
    invitation.status = InvitationStatusEnum.accepted
    invitation.responded_at = datetime.now(UTC)

    async def fake_accept(self: InvitationService, invitation_id: object, user: object) -> Invitation:
        return invitation

    monkeypatch.setattr(InvitationService, "accept", fake_accept)

    response = await client.post(f"/api/v1/invitations/{invitation.id}/accept")

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"
    assert fake_redis.store[f"prefs:{current_user.id}:selected_farm"] == str(invitation.farm_id)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (LookupError("invitation not found"), 404),
        (PermissionError("different account"), 403),
        (ValueError("Invitation was already accepted"), 400),
    ],
)
async def test_decline_route_error_mapping(
    client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
    error: Exception,
    status_code: int,
) -> None:
    async def fake_decline(self: InvitationService, *_args: object) -> Invitation:
        raise error

    monkeypatch.setattr(InvitationService, "decline", fake_decline)

    response = await client.post(f"/api/v1/invitations/{uuid4()}/decline")

    assert response.status_code == status_code


@pytest.mark.asyncio
async def test_list_my_invitations(client: AsyncClient, monkeypatch: pytest.MonkeyPatch, current_user: Any) -> None:
    invitation = _invitation(_farm(_user("ana@campo.ar")), current_user.email)

    async def fake_list(self: InvitationService, user: object) -> list[Invitation]:
        return [invitation]

    monkeypatch.setattr(InvitationService, "list_pending", fake_list)

    response = await client.get("/api/v1/invitations")

    assert response.status_code == 200
    items = response.json()["items"]
    assert items[0]["farm_name"] == "La Esperanza"
    assert items[0]["status"] == "pending"


@pytest.mark.asyncio
async def test_invite_route_by_viewer_is_forbidden(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def fake_invite(self: InvitationService, *_args: object) -> Invitation:
        raise PermissionError("Only the farm owner can manage members")

    monkeypatch.setattr(InvitationService, "invite", fake_invite)

    response = await client.post(
        f"/api/v1/farms/{uuid4()}/invitations",
        json={"email": "caro@campo.ar", "role": "viewer"},
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invite_route_validates_email(client: AsyncClient, fake_db_session: Any) -> None:
    response = await client.post(
        f"/api/v1/farms/{uuid4()}/invitations",
        json={"email": "caro.campo.ar", "role": "viewer"},
    )

    assert response.status_code == 422
    fake_db_session.add.assert_not_called()
