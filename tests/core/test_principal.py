"""Principal resolution against the database and over HTTP."""

from datetime import datetime, timedelta, timezone

import pytest

from collabhub.core.errors import AuthError, Reason
from collabhub.core.principal import resolve_principal
from collabhub.models import Role


def _decode_as(user_id):
    return lambda credential: user_id


@pytest.mark.asyncio
async def test_missing_credential_is_unauthenticated(db_session):
    with pytest.raises(AuthError) as exc:
        await resolve_principal(None, db_session, _decode_as(1))
    assert exc.value.reason == Reason.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_unknown_subject_is_unauthenticated(db_session):
    with pytest.raises(AuthError) as exc:
        await resolve_principal("token", db_session, _decode_as(999))
    assert exc.value.reason == Reason.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_nonprofit_principal_carries_org(db_session, nonprofit):
    user, org = nonprofit
    principal = await resolve_principal("token", db_session, _decode_as(user.id))
    assert principal.id == user.id
    assert principal.role == Role.NONPROFIT
    assert principal.org_id == org.id
    assert not principal.is_admin


@pytest.mark.asyncio
async def test_admin_principal(db_session, admin_user):
    principal = await resolve_principal("token", db_session, _decode_as(admin_user.id))
    assert principal.is_admin
    assert principal.org_id is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["active", "pending", "suspended"])
async def test_soft_deleted_user_reported_as_suspended(db_session, user_factory, status):
    user = await user_factory(
        account_status=status, deleted_at=datetime.now(timezone.utc)
    )
    with pytest.raises(AuthError) as exc:
        await resolve_principal("token", db_session, _decode_as(user.id))
    assert exc.value.reason == Reason.ACCOUNT_SUSPENDED


@pytest.mark.asyncio
async def test_suspended_status_rejected(db_session, user_factory):
    user = await user_factory(account_status="suspended")
    with pytest.raises(AuthError) as exc:
        await resolve_principal("token", db_session, _decode_as(user.id))
    assert exc.value.reason == Reason.ACCOUNT_SUSPENDED


@pytest.mark.asyncio
async def test_pending_user_rejected(db_session, user_factory):
    user = await user_factory(account_status="pending")
    with pytest.raises(AuthError) as exc:
        await resolve_principal("token", db_session, _decode_as(user.id))
    assert exc.value.reason == Reason.ACCOUNT_PENDING


@pytest.mark.asyncio
async def test_request_without_token(test_client):
    resp = await test_client.get("/api/v1/users/me")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"
    detail = resp.json()["detail"]
    assert detail["kind"] == "AuthError"
    assert detail["reason"] == "Unauthenticated"


@pytest.mark.asyncio
async def test_request_with_expired_token(test_client, researcher):
    from collabhub.api.v1.helpers.authentication import create_access_token

    token = create_access_token(
        {"sub": str(researcher.id)}, expires_delta=timedelta(minutes=-5)
    )
    resp = await test_client.get(
        "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"]["reason"] == "Expired"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token_data",
    [None, {"sub": "not-a-number"}, {"role": "admin"}],
    ids=["garbage", "non-numeric-sub", "no-sub"],
)
async def test_request_with_malformed_token(test_client, token_data):
    from collabhub.api.v1.helpers.authentication import create_access_token

    token = "not.a.jwt" if token_data is None else create_access_token(token_data)
    resp = await test_client.get(
        "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"]["reason"] == "Malformed"


@pytest.mark.asyncio
async def test_token_signed_with_other_key_is_malformed(test_client, researcher):
    from jose import jwt

    token = jwt.encode({"sub": str(researcher.id)}, "someone-else", algorithm="HS256")
    resp = await test_client.get(
        "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"]["reason"] == "Malformed"
