"""Tests for the first-run bootstrap logic."""

from sqlalchemy import select


async def test_bootstrap_creates_admin(db_session):
    """ensure_default_admin creates the admin on an empty DB."""
    from collabhub.bootstrap import ensure_default_admin
    from collabhub.models import User

    created = await ensure_default_admin(db_session)
    assert created is not None

    users = (await db_session.execute(select(User))).scalars().all()
    assert len(users) == 1
    assert users[0].email == "admin@localhost"
    assert users[0].role == "admin"
    assert users[0].account_status == "active"


async def test_bootstrap_is_idempotent(db_session):
    """Calling ensure_default_admin twice should not create duplicates."""
    from collabhub.bootstrap import ensure_default_admin
    from collabhub.models import User

    await ensure_default_admin(db_session)
    assert await ensure_default_admin(db_session) is None

    count = len((await db_session.execute(select(User))).scalars().all())
    assert count == 1


async def test_bootstrap_skips_when_admin_exists(db_session, admin_user):
    from collabhub.bootstrap import ensure_default_admin

    assert await ensure_default_admin(db_session) is None


async def test_bootstrap_skips_when_email_taken(db_session, user_factory):
    from collabhub.bootstrap import ensure_default_admin
    from collabhub.models import User

    await user_factory(role="researcher", email="admin@localhost")
    assert await ensure_default_admin(db_session) is None

    admins = (
        await db_session.execute(select(User).where(User.role == "admin"))
    ).scalars().all()
    assert admins == []


async def test_default_admin_can_login(db_session, test_client):
    """The bootstrapped admin can log in with default credentials."""
    from collabhub.bootstrap import ensure_default_admin

    await ensure_default_admin(db_session)
    resp = await test_client.post(
        "/api/v1/auth/login",
        json={"email": "admin@localhost", "password": "admin"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert "access_token" in data
    assert data["user"]["role"] == "admin"
