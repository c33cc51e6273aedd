"""
Shared test fixtures for collabhub.

Per-test table create/drop on the engine named by TEST_DATABASE_URL, or a
temporary SQLite file when it is unset. Factories commit so that rows
survive a request that rolls its own transaction back.
"""

import os
from datetime import date, datetime, timezone

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-tests")

from collabhub.db.base import Base  # noqa: E402
from collabhub.main import app  # noqa: E402
import collabhub.models  # noqa: E402,F401


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    url = os.environ.get("TEST_DATABASE_URL") or (
        f"sqlite+aiosqlite:///{tmp_path / 'collabhub-test.db'}"
    )
    engine = create_async_engine(url, echo=False)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    """Fresh tables per test: drop → create → yield session → drop."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session):
    from collabhub.db.session import get_db
    from collabhub.api.v1.helpers.authentication import JWTAuthenticationProvider

    async def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    if not hasattr(app.state, "authentication_provider"):
        app.state.authentication_provider = JWTAuthenticationProvider()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers_for(user_id: int) -> dict[str, str]:
    from collabhub.api.v1.helpers.authentication import token_for_user

    return {"Authorization": f"Bearer {token_for_user(user_id)}"}


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def user_factory(db_session):
    from collabhub.api.v1.helpers.authentication import hash_password
    from collabhub.models import User

    counter = {"n": 0}

    async def _create(
        role: str = "researcher",
        email: str | None = None,
        name: str = "Test User",
        password: str = "password123",
        account_status: str = "active",
        deleted_at: datetime | None = None,
        suspension_reason: str | None = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"{role}{counter['n']}@example.com",
            password_hash=hash_password(password),
            role=role,
            account_status=account_status,
            deleted_at=deleted_at,
            suspension_reason=suspension_reason,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _create


@pytest_asyncio.fixture(scope="function")
async def org_factory(db_session):
    from collabhub.models import Organization

    async def _create(user, name: str = "Helping Hands") -> Organization:
        org = Organization(user_id=user.id, name=name)
        db_session.add(org)
        await db_session.commit()
        return org

    return _create


@pytest_asyncio.fixture(scope="function")
async def project_factory(db_session):
    from collabhub.models import Project

    async def _create(
        org,
        title: str = "Food bank demand forecasting",
        status: str = "draft",
        **fields,
    ) -> Project:
        project = Project(org_id=org.id, title=title, status=status, **fields)
        db_session.add(project)
        await db_session.commit()
        return project

    return _create


@pytest_asyncio.fixture(scope="function")
async def milestone_factory(db_session):
    from collabhub.models import Milestone

    async def _create(
        project,
        name: str = "Data audit",
        status: str = "pending",
        due_date: date | None = None,
        completed_at: datetime | None = None,
    ) -> Milestone:
        if status == "completed" and completed_at is None:
            completed_at = datetime.now(timezone.utc)
        milestone = Milestone(
            project_id=project.id,
            name=name,
            status=status,
            due_date=due_date,
            completed_at=completed_at,
        )
        db_session.add(milestone)
        await db_session.commit()
        return milestone

    return _create


# ---------------------------------------------------------------------------
# Seed data helpers
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def admin_user(user_factory):
    return await user_factory(role="admin", email="admin@example.com", name="Admin")


@pytest_asyncio.fixture(scope="function")
async def nonprofit(user_factory, org_factory):
    """A nonprofit user with its organization. Returns (user, org)."""
    user = await user_factory(role="nonprofit", email="np@example.com")
    org = await org_factory(user)
    return user, org


@pytest_asyncio.fixture(scope="function")
async def other_nonprofit(user_factory, org_factory):
    user = await user_factory(role="nonprofit", email="np2@example.com")
    org = await org_factory(user, name="Other Org")
    return user, org


@pytest_asyncio.fixture(scope="function")
async def researcher(user_factory):
    return await user_factory(role="researcher", email="res@example.com")


@pytest_asyncio.fixture(scope="function")
async def admin_headers(admin_user):
    return auth_headers_for(admin_user.id)


@pytest_asyncio.fixture(scope="function")
async def nonprofit_headers(nonprofit):
    user, _ = nonprofit
    return auth_headers_for(user.id)


@pytest_asyncio.fixture(scope="function")
async def headers_for():
    """Build bearer headers for any user id."""
    return auth_headers_for
