"""
Engine and session factory, created lazily from ``settings.database_url``.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from collabhub.config import settings

logger = logging.getLogger(__name__)

_engine = None
_session_factory = None


def get_engine():
    global _engine
    if _engine is None:
        options = {"echo": settings.debug}
        if not settings.database_url.startswith("sqlite"):
            options.update(pool_pre_ping=True, pool_size=5, max_overflow=10)
        _engine = create_async_engine(settings.database_url, **options)
        logger.info("Database engine created for %s", _engine.url.get_backend_name())
    return _engine


def get_session_factory():
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(), class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
    return _session_factory


async def get_db():
    """FastAPI dependency yielding one session per request."""
    async with get_session_factory()() as session:
        yield session


async def create_tables() -> None:
    """Create any missing tables for the registered models."""
    from collabhub.db.base import Base
    import collabhub.models  # noqa: F401  register models with metadata

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine():
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
