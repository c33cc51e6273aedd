"""
Researcher academic history and certifications.

Both kinds are plain owned lists: a researcher reads and edits only rows
whose ``user_id`` is their own Principal id, and rows belonging to anyone
else are reported as not found.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.core.errors import NotFoundError, ValidationError
from collabhub.core.policy import Action, require
from collabhub.core.principal import Principal
from collabhub.db.repository import Repository, transaction
from collabhub.models import AcademicHistory, Certification

logger = logging.getLogger(__name__)

YEAR_MAX_LENGTH = 50


@dataclass(frozen=True)
class CredentialKind:
    model: type
    label: str
    fields: tuple[str, ...]
    required: tuple[str, ...]


ACADEMIC_HISTORY = CredentialKind(
    model=AcademicHistory,
    label="Academic history entry",
    fields=("degree", "field", "institution", "year"),
    required=("degree", "institution"),
)

CERTIFICATION = CredentialKind(
    model=Certification,
    label="Certification",
    fields=("name", "issuer", "year", "credential_id"),
    required=("name", "issuer"),
)


def _clean(kind: CredentialKind, data: dict, *, creating: bool) -> dict:
    values = {}
    for field in kind.fields:
        if field not in data or data[field] is None:
            continue
        value = str(data[field]).strip()
        if field in kind.required and not value:
            raise ValidationError(f"{field} cannot be empty", errors=[field])
        values[field] = value or None

    if creating:
        missing = [f for f in kind.required if not values.get(f)]
        if missing:
            raise ValidationError(
                f"{' and '.join(missing)} are required", errors=missing
            )
    year = values.get("year")
    if year is not None and len(year) > YEAR_MAX_LENGTH:
        raise ValidationError(f"year must be at most {YEAR_MAX_LENGTH} characters")
    return values


async def _owned_or_404(
    db: AsyncSession, principal: Principal, kind: CredentialKind, entry_id: int
):
    model = kind.model
    entry = await Repository(db, model).find_one(
        model.id == entry_id, model.user_id == principal.id
    )
    if entry is None:
        raise NotFoundError(f"{kind.label} not found")
    return entry


async def list_entries(
    db: AsyncSession, principal: Principal, kind: CredentialKind
) -> list:
    require(principal, Action.RESEARCHER_PROFILE_EDIT)
    model = kind.model
    return await Repository(db, model).find_where(
        model.user_id == principal.id,
        order_by=[model.year.desc(), model.id.desc()],
    )


async def add_entry(
    db: AsyncSession, principal: Principal, kind: CredentialKind, data: dict
):
    require(principal, Action.RESEARCHER_PROFILE_EDIT)
    values = _clean(kind, data, creating=True)

    async with transaction(db):
        entry = await Repository(db, kind.model).create(user_id=principal.id, **values)

    logger.info("User %s added %s %s", principal.id, kind.model.__tablename__, entry.id)
    return entry


async def update_entry(
    db: AsyncSession,
    principal: Principal,
    kind: CredentialKind,
    entry_id: int,
    changes: dict,
):
    require(principal, Action.RESEARCHER_PROFILE_EDIT)
    entry = await _owned_or_404(db, principal, kind, entry_id)
    values = _clean(kind, changes, creating=False)
    if not values:
        raise ValidationError("No valid update fields provided")

    async with transaction(db):
        await Repository(db, kind.model).update(entry, **values)
    return entry


async def delete_entry(
    db: AsyncSession, principal: Principal, kind: CredentialKind, entry_id: int
) -> None:
    require(principal, Action.RESEARCHER_PROFILE_EDIT)
    entry = await _owned_or_404(db, principal, kind, entry_id)

    async with transaction(db):
        await Repository(db, kind.model).hard_delete(entry)

    logger.info("User %s removed %s %s", principal.id, kind.model.__tablename__, entry_id)
