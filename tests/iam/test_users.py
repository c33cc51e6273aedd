"""Registration, login and self-service account endpoint tests."""

import pytest
from sqlalchemy import select


@pytest.mark.asyncio
async def test_register_researcher(test_client):
    resp = await test_client.post(
        "/api/v1/auth/register",
        json={
            "name": "Grace",
            "email": "Grace@Example.com",
            "password": "password123",
            "researcher_data": {"affiliation": "MIT", "rate_min": 50, "rate_max": 90},
        },
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["access_token"]
    assert data["user"]["email"] == "grace@example.com"
    assert data["user"]["role"] == "researcher"
    assert data["user"]["account_status"] == "active"

    headers = {"Authorization": f"Bearer {data['access_token']}"}
    profile = await test_client.get("/api/v1/researchers/me", headers=headers)
    assert profile.status_code == 200
    assert profile.json()["affiliation"] == "MIT"
    assert profile.json()["rate_min"] == 50


@pytest.mark.asyncio
async def test_register_nonprofit_creates_organization(test_client):
    resp = await test_client.post(
        "/api/v1/auth/register",
        json={
            "name": "Pat",
            "email": "pat@example.com",
            "password": "password123",
            "role": "nonprofit",
            "organization_data": {"name": "River Trust", "mission": "Clean water"},
        },
    )
    assert resp.status_code == 201
    token = resp.json()["access_token"]

    org = await test_client.get(
        "/api/v1/organizations/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert org.status_code == 200
    assert org.json()["name"] == "River Trust"


@pytest.mark.asyncio
async def test_register_nonprofit_requires_organization_name(test_client):
    resp = await test_client.post(
        "/api/v1/auth/register",
        json={
            "name": "Pat",
            "email": "pat@example.com",
            "password": "password123",
            "role": "nonprofit",
        },
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["kind"] == "ValidationError"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"email": "x@example.com", "password": "password123"},
        {"name": "X", "password": "password123"},
        {"name": "X", "email": "x@example.com"},
        {"name": "X", "email": "x@example.com", "password": "pw", "role": "wizard"},
    ],
    ids=["no-name", "no-email", "no-password", "bad-role"],
)
async def test_register_invalid(test_client, payload):
    resp = await test_client.post("/api/v1/auth/register", json=payload)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_register_rejects_inverted_rate_range(test_client):
    resp = await test_client.post(
        "/api/v1/auth/register",
        json={
            "name": "Grace",
            "email": "grace@example.com",
            "password": "password123",
            "researcher_data": {"rate_min": 100, "rate_max": 10},
        },
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_register_duplicate_email(test_client, researcher):
    resp = await test_client.post(
        "/api/v1/auth/register",
        json={"name": "Again", "email": "RES@example.com", "password": "password123"},
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["kind"] == "ConflictError"


@pytest.mark.asyncio
async def test_register_pending_when_approval_required(test_client, monkeypatch):
    from collabhub.config import settings

    monkeypatch.setattr(settings, "require_account_approval", True)
    resp = await test_client.post(
        "/api/v1/auth/register",
        json={"name": "Lee", "email": "lee@example.com", "password": "password123"},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["access_token"] is None
    assert data["user"]["account_status"] == "pending"

    login = await test_client.post(
        "/api/v1/auth/login",
        json={"email": "lee@example.com", "password": "password123"},
    )
    assert login.status_code == 401
    assert login.json()["detail"]["reason"] == "AccountPending"


@pytest.mark.asyncio
@pytest.mark.parametrize("approval", [False, True])
async def test_register_admin_role_rejected(test_client, db_session, monkeypatch, approval):
    from collabhub.config import settings
    from collabhub.models import User

    monkeypatch.setattr(settings, "require_account_approval", approval)
    resp = await test_client.post(
        "/api/v1/auth/register",
        json={
            "name": "Mallory",
            "email": "mallory@example.com",
            "password": "password123",
            "role": "admin",
        },
    )
    assert resp.status_code == 403
    assert resp.json()["detail"]["reason"] == "RoleNotPermitted"

    row = await db_session.execute(select(User).where(User.email == "mallory@example.com"))
    assert row.scalar_one_or_none() is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "role, extra, profile_model",
    [
        ("researcher", {}, "ResearcherProfile"),
        ("nonprofit", {"organization_data": {"name": "River Trust"}}, "Organization"),
    ],
)
async def test_register_rolls_back_user_when_profile_insert_fails(
    db_session, monkeypatch, role, extra, profile_model
):
    from collabhub import models
    from collabhub.db.repository import Repository
    from collabhub.models import User
    from collabhub.services import accounts

    failing_model = getattr(models, profile_model)
    original_create = Repository.create

    async def create(self, **values):
        if self.model is failing_model:
            raise RuntimeError("profile insert failed")
        return await original_create(self, **values)

    monkeypatch.setattr(Repository, "create", create)

    with pytest.raises(RuntimeError):
        await accounts.register(
            db_session,
            name="Sam",
            email="sam@example.com",
            password="password123",
            role=role,
            **extra,
        )

    row = await db_session.execute(
        select(User).where(User.email == "sam@example.com")
    )
    assert row.scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_login_success(test_client, researcher, db_session):
    resp = await test_client.post(
        "/api/v1/auth/login",
        json={"email": "res@example.com", "password": "password123"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["email"] == "res@example.com"

    await db_session.refresh(researcher)
    assert researcher.last_login is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email,password",
    [
        ("res@example.com", "wrongpassword"),
        ("nobody@example.com", "password123"),
    ],
    ids=["wrong-password", "nonexistent-email"],
)
async def test_login_failure(test_client, researcher, email, password):
    resp = await test_client.post(
        "/api/v1/auth/login", json={"email": email, "password": password}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"]["reason"] == "InvalidCredentials"


@pytest.mark.asyncio
async def test_login_soft_deleted_account(test_client, user_factory):
    from datetime import datetime, timezone

    await user_factory(
        email="gone@example.com",
        deleted_at=datetime.now(timezone.utc),
        suspension_reason="spam",
    )
    resp = await test_client.post(
        "/api/v1/auth/login",
        json={"email": "gone@example.com", "password": "password123"},
    )
    assert resp.status_code == 401
    assert resp.json()["detail"]["reason"] == "AccountSuspended"


@pytest.mark.asyncio
async def test_get_me(test_client, researcher, headers_for):
    resp = await test_client.get("/api/v1/users/me", headers=headers_for(researcher.id))
    assert resp.status_code == 200
    data = resp.json()
    assert data["email"] == "res@example.com"
    assert data["state"] == "active"
    assert "password_hash" not in data


@pytest.mark.asyncio
async def test_update_me(test_client, researcher, headers_for):
    resp = await test_client.put(
        "/api/v1/users/me",
        headers=headers_for(researcher.id),
        json={"name": "  Renamed  ", "email": "NEW@example.com"},
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Renamed"
    assert resp.json()["email"] == "new@example.com"


@pytest.mark.asyncio
async def test_update_me_email_taken(test_client, researcher, admin_user, headers_for):
    resp = await test_client.put(
        "/api/v1/users/me",
        headers=headers_for(researcher.id),
        json={"email": "admin@example.com"},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_change_password(test_client, researcher, headers_for):
    resp = await test_client.put(
        "/api/v1/users/me/password",
        headers=headers_for(researcher.id),
        json={"current_password": "password123", "new_password": "newsecure123"},
    )
    assert resp.status_code == 200

    # Old password no longer works
    resp = await test_client.post(
        "/api/v1/auth/login",
        json={"email": "res@example.com", "password": "password123"},
    )
    assert resp.status_code == 401

    # New password works
    resp = await test_client.post(
        "/api/v1/auth/login",
        json={"email": "res@example.com", "password": "newsecure123"},
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(test_client, researcher, headers_for):
    resp = await test_client.put(
        "/api/v1/users/me/password",
        headers=headers_for(researcher.id),
        json={"current_password": "notright", "new_password": "newsecure123"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["reason"] == "InvalidCredentials"


@pytest.mark.asyncio
async def test_change_password_too_short(test_client, researcher, headers_for):
    resp = await test_client.put(
        "/api/v1/users/me/password",
        headers=headers_for(researcher.id),
        json={"current_password": "password123", "new_password": "short"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_preferences_defaults_and_update(test_client, researcher, headers_for):
    headers = headers_for(researcher.id)
    resp = await test_client.get("/api/v1/users/me/preferences", headers=headers)
    assert resp.status_code == 200
    assert set(resp.json()) >= {"email_notifications", "weekly_digest"}

    resp = await test_client.put(
        "/api/v1/users/me/preferences",
        headers=headers,
        json={"weekly_digest": True, "marketing_emails": False},
    )
    assert resp.status_code == 200
    assert resp.json()["weekly_digest"] is True
    assert resp.json()["marketing_emails"] is False

    again = await test_client.get("/api/v1/users/me/preferences", headers=headers)
    assert again.json()["weekly_digest"] is True


@pytest.mark.asyncio
async def test_delete_me_soft_deletes(test_client, researcher, headers_for, db_session):
    from collabhub.models import User

    user_id = researcher.id
    headers = headers_for(user_id)
    resp = await test_client.delete(
        "/api/v1/users/me", params={"reason": "moving on"}, headers=headers
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["previous_state"]["state"] == "active"
    assert data["user"]["state"] == "deleted"
    assert data["user"]["suspension_reason"] == "moving on"

    # the row survives and the token no longer works
    row = (
        await db_session.execute(select(User).where(User.id == user_id))
    ).scalar_one()
    assert row.deleted_at is not None
    resp = await test_client.get("/api/v1/users/me", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["detail"]["reason"] == "AccountSuspended"


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(test_client, admin_user, admin_headers):
    resp = await test_client.delete("/api/v1/users/me", headers=admin_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["reason"] == "AdminExempt"
