from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient

from app.auth.jwt import AuthError, create_access_token, create_refresh_token, decode_token
from app.models.enums import UserRoleEnum
from app.routes import auth as auth_routes
from app.services.farm_service import FarmService
from app.services.rainfall_service import RainfallService
from app.services.user_service import UserService, normalize_email


def _bearer(user_id: Any) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user_id), expires_minutes=5)}"}


def test_jwt_create_decode_roundtrip(auth_user_id: UUID) -> None:
    token = create_access_token(str(auth_user_id), expires_minutes=5)
    payload = decode_token(token, expected_type="access")
    assert payload["sub"] == str(auth_user_id)
    assert payload["typ"] == "access"


def test_decode_invalid_token_raises_auth_error() -> None:
    with pytest.raises(AuthError):
        decode_token("invalid.token.payload", expected_type="access")


def test_refresh_token_is_not_an_access_token(auth_user_id: UUID) -> None:
    token = create_refresh_token(str(auth_user_id))
    with pytest.raises(AuthError) as exc_info:
        decode_token(token, expected_type="access")
    assert exc_info.value.code == "token_type_invalid"


def test_emails_are_normalized() -> None:
    assert normalize_email("  Ana@Campo.AR ") == "ana@campo.ar"


@pytest.mark.asyncio
async def test_missing_jwt_rejected_on_protected_endpoint(auth_client: AsyncClient) -> None:
    response = await auth_client.get("/api/v1/farms")
    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "auth_required"


@pytest.mark.asyncio
async def test_unapproved_user_is_held_at_the_gate(
    auth_client: AsyncClient, fake_db_session: Any, fake_result: Any, user_factory: Any
) -> None:
    user = user_factory(is_approved=False)
    fake_db_session.queue(fake_result(user))

    response = await auth_client.get("/api/v1/farms", headers=_bearer(user.id))

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "approval_pending"


@pytest.mark.asyncio
async def test_unapproved_user_can_still_read_profile(
    auth_client: AsyncClient, fake_db_session: Any, fake_result: Any, user_factory: Any
) -> None:
    user = user_factory(is_approved=False)
    fake_db_session.queue(fake_result(user))

    response = await auth_client.get("/api/v1/auth/me", headers=_bearer(user.id))

    assert response.status_code == 200
    assert response.json()["is_approved"] is False


@pytest.mark.asyncio
async def test_admin_skips_the_approval_gate(
    auth_client: AsyncClient,
    fake_db_session: Any,
    fake_result: Any,
    user_factory: Any,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    admin = user_factory(role=UserRoleEnum.admin, is_approved=False)
    fake_db_session.queue(fake_result(admin))

    async def fake_list(self: FarmService, user_id: object) -> list[object]:
        return []

    monkeypatch.setattr(FarmService, "list_farms_for_user", fake_list)

    response = await auth_client.get("/api/v1/farms", headers=_bearer(admin.id))

    assert response.status_code == 200
    assert response.json() == {"items": []}


@pytest.mark.asyncio
async def test_inactive_user_is_rejected(
    auth_client: AsyncClient, fake_db_session: Any, fake_result: Any, user_factory: Any
) -> None:
    user = user_factory(is_active=False)
    fake_db_session.queue(fake_result(user))

    response = await auth_client.get("/api/v1/auth/me", headers=_bearer(user.id))

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "user_invalid"


@pytest.mark.asyncio
async def test_only_admins_approve_accounts(
    auth_client: AsyncClient, fake_db_session: Any, fake_result: Any, user_factory: Any
) -> None:
    user = user_factory()
    fake_db_session.queue(fake_result(user))

    response = await auth_client.post(f"/api/v1/auth/users/{uuid4()}/approve", headers=_bearer(user.id))

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "forbidden"


@pytest.mark.asyncio
async def test_admin_approves_account(
    auth_client: AsyncClient, fake_db_session: Any, fake_result: Any, user_factory: Any
) -> None:
    admin = user_factory(role=UserRoleEnum.admin)
    pending = user_factory(email="beto@campo.ar", is_approved=False)
    fake_db_session.queue(fake_result(admin), fake_result(pending))

    response = await auth_client.post(f"/api/v1/auth/users/{pending.id}/approve", headers=_bearer(admin.id))

    assert response.status_code == 200
    assert response.json()["is_approved"] is True
    assert pending.is_approved is True


@pytest.mark.asyncio
async def test_signup_returns_tokens_and_schedules_welcome(
    auth_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    user = SimpleNamespace(id=uuid4(), email="ana@campo.ar", display_name="Ana")
    welcomed: list[tuple[str, str]] = []

    async def fake_signup(self: UserService, email: str, password: str, display_name: str = "") -> object:
        return user

    async def fake_welcome(email: str, name: str | None = None) -> None:
        welcomed.append((email, name))

    monkeypatch.setattr(UserService, "signup", fake_signup)
    monkeypatch.setattr(auth_routes, "send_welcome_quietly", fake_welcome)

    response = await auth_client.post(
        "/api/v1/auth/signup",
        json={"email": "ana@campo.ar", "password": "secreto1", "display_name": "Ana"},
    )

    assert response.status_code == 201
    body = response.json()
    assert decode_token(body["access_token"], expected_type="access")["sub"] == str(user.id)
    assert decode_token(body["refresh_token"], expected_type="refresh")["sub"] == str(user.id)
    assert welcomed == [("ana@campo.ar", "Ana")]


@pytest.mark.asyncio
async def test_duplicate_signup_is_400(auth_client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_signup(self: UserService, *_args: object) -> object:
        raise ValueError("An account with this e-mail already exists")

    monkeypatch.setattr(UserService, "signup", fake_signup)

    response = await auth_client.post(
        "/api/v1/auth/signup",
        json={"email": "ana@campo.ar", "password": "secreto1"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_with_unknown_email(auth_client: AsyncClient) -> None:
    response = await auth_client.post(
        "/api/v1/auth/login",
        json={"email": "nadie@campo.ar", "password": "secreto1"},
    )

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "credentials_invalid"


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(auth_client: AsyncClient, auth_user_id: UUID) -> None:
    response = await auth_client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": create_access_token(str(auth_user_id))},
    )

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "token_type_invalid"


@pytest.mark.asyncio
async def test_profile_rename_updates_memberships(fake_db_session: Any, fake_result: Any, user_factory: Any) -> None:
    user = user_factory(display_name="Ana")
    membership = SimpleNamespace(user_id=user.id, display_name="Ana")
    fake_db_session.queue(fake_result(rows=[membership]))

    await UserService(fake_db_session).update_profile(user, "  Ana María ")

    assert user.display_name == "Ana María"
    assert membership.display_name == "Ana María"
    fake_db_session.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_rate_limit_per_farm(client: AsyncClient, fake_redis: Any, monkeypatch: pytest.MonkeyPatch) -> None:
    farm_id = uuid4()

    @dataclass
    class _SettingsStub:
        rate_limit_user_per_minute: int = 1

    async def fake_list(self: RainfallService, _farm_id: object) -> list[object]:
        return []

    monkeypatch.setattr("app.middleware.rate_limit.get_settings", lambda: _SettingsStub())
    monkeypatch.setattr(RainfallService, "list_records", fake_list)

    first = await client.get(f"/api/v1/farms/{farm_id}/rainfall")
    second = await client.get(f"/api/v1/farms/{farm_id}/rainfall")

    assert first.status_code == 200
    assert second.status_code == 429
    assert second.json()["detail"]["error"] == "rate_limited"
    fake_redis.expire.assert_awaited_once()
