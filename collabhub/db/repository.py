"""
Repository verbs over an AsyncSession.

Services pass filters as SQLAlchemy criteria and leave statement assembly,
soft-delete visibility and flushing to these verbs. Models with a
``deleted_at`` column are soft-deletable: lookups hide soft-deleted rows
unless ``include_deleted=True``.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession


ModelT = TypeVar("ModelT")


@asynccontextmanager
async def transaction(db: AsyncSession):
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise


class Repository(Generic[ModelT]):
    def __init__(self, db: AsyncSession, model: type[ModelT]):
        self.db = db
        self.model = model

    @property
    def soft_deletable(self) -> bool:
        return hasattr(self.model, "deleted_at")

    def _pk(self):
        return self.model.__mapper__.primary_key[0]

    def _visible(self, stmt, include_deleted: bool):
        if self.soft_deletable and not include_deleted:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return stmt

    async def find_by_id(
        self, entity_id: Any, *, include_deleted: bool = False
    ) -> ModelT | None:
        stmt = self._visible(
            select(self.model).where(self._pk() == entity_id), include_deleted
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def find_one(self, *criteria, include_deleted: bool = False) -> ModelT | None:
        stmt = self._visible(select(self.model).where(*criteria), include_deleted)
        return (await self.db.execute(stmt.limit(1))).scalars().first()

    async def find_where(
        self,
        *criteria,
        order_by=None,
        limit: int | None = None,
        offset: int | None = None,
        include_deleted: bool = False,
    ) -> list[ModelT]:
        stmt = self._visible(select(self.model).where(*criteria), include_deleted)
        if order_by is not None:
            if not isinstance(order_by, (list, tuple)):
                order_by = [order_by]
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        return list((await self.db.execute(stmt)).scalars().all())

    async def create(self, **values) -> ModelT:
        entity = self.model(**values)
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def update(self, entity: ModelT, **values) -> ModelT:
        for key, value in values.items():
            setattr(entity, key, value)
        await self.db.flush()
        return entity

    async def soft_delete(
        self, entity: ModelT, at: datetime | None = None, **values
    ) -> ModelT:
        """Stamp ``deleted_at``; ``values`` are written alongside it."""
        entity.deleted_at = at or datetime.now(timezone.utc)
        return await self.update(entity, **values)

    async def restore(self, entity: ModelT, **values) -> ModelT:
        entity.deleted_at = None
        return await self.update(entity, **values)

    async def hard_delete(self, entity: ModelT) -> None:
        await self.db.delete(entity)
        await self.db.flush()

    async def delete_where(self, *criteria) -> int:
        result = await self.db.execute(delete(self.model).where(*criteria))
        return result.rowcount or 0

    async def count_where(self, *criteria, include_deleted: bool = False) -> int:
        stmt = self._visible(
            select(func.count()).select_from(self.model).where(*criteria),
            include_deleted,
        )
        return (await self.db.execute(stmt)).scalar_one()
