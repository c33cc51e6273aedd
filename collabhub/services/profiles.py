"""
Organization and researcher profile operations.

A nonprofit owns at most one Organization and a researcher at most one
ResearcherProfile; both are created on first save.
"""

import logging

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.config import settings
from collabhub.core.errors import ConfirmationRequired, NotFoundError, ValidationError
from collabhub.core.policy import Action, require
from collabhub.core.principal import Principal
from collabhub.core.trail import AuditSink
from collabhub.db.repository import Repository, transaction
from collabhub.models import Organization, ResearcherProfile
from collabhub.services.accounts import ORGANIZATION_FIELDS, clean_researcher_data
from collabhub.services.common import Outcome, delete_organization_rows, emit_audit

logger = logging.getLogger(__name__)


async def get_organization(db: AsyncSession, principal: Principal) -> Organization:
    require(principal, Action.ORGANIZATION_EDIT)
    org = await Repository(db, Organization).find_one(
        Organization.user_id == principal.id
    )
    if org is None:
        raise NotFoundError(
            "Organization not found. Please create organization profile first."
        )
    return org


async def save_organization(
    db: AsyncSession, principal: Principal, changes: dict
) -> Outcome:
    """Create or update the caller's organization.

    ``previous_state`` is None when the organization was just created.
    """
    require(principal, Action.ORGANIZATION_EDIT)
    values = {k: v for k, v in changes.items() if k in ORGANIZATION_FIELDS and v is not None}
    if "name" in values and not str(values["name"]).strip():
        raise ValidationError("Organization name cannot be empty")

    repo = Repository(db, Organization)
    org = await repo.find_one(Organization.user_id == principal.id)

    async with transaction(db):
        if org is None:
            if not values.get("name"):
                raise ValidationError("Organization name is required")
            org = await repo.create(user_id=principal.id, **values)
            previous = None
            logger.info("User %s created organization %s", principal.id, org.id)
        else:
            previous = {field: getattr(org, field) for field in ORGANIZATION_FIELDS}
            await repo.update(org, **values)
    return Outcome(org, previous)


async def get_researcher_profile(
    db: AsyncSession, principal: Principal
) -> ResearcherProfile:
    require(principal, Action.RESEARCHER_PROFILE_EDIT)
    profile = await Repository(db, ResearcherProfile).find_by_id(principal.id)
    if profile is None:
        raise NotFoundError("Researcher profile not found")
    return profile


async def save_researcher_profile(
    db: AsyncSession, principal: Principal, changes: dict
) -> Outcome:
    require(principal, Action.RESEARCHER_PROFILE_EDIT)
    repo = Repository(db, ResearcherProfile)
    profile = await repo.find_by_id(principal.id)

    values = clean_researcher_data({k: v for k, v in changes.items() if v is not None})
    if profile is not None:
        # the range rule applies to the merged result, not just this request
        merged = {
            "rate_min": values.get("rate_min", profile.rate_min),
            "rate_max": values.get("rate_max", profile.rate_max),
        }
        clean_researcher_data(merged)

    async with transaction(db):
        if profile is None:
            profile = await repo.create(user_id=principal.id, **values)
            previous = None
        else:
            previous = {field: getattr(profile, field) for field in values}
            await repo.update(profile, **values)
    return Outcome(profile, previous)


# ── admin ─────────────────────────────────────────────────────────────────


async def list_organizations(
    db: AsyncSession,
    principal: Principal,
    *,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Organization], int]:
    require(principal, Action.ADMIN_BROWSE)
    criteria = []
    if search:
        pattern = f"%{search}%"
        criteria.append(
            or_(Organization.name.ilike(pattern), Organization.ein.ilike(pattern))
        )
    repo = Repository(db, Organization)
    total = await repo.count_where(*criteria)
    orgs = await repo.find_where(
        *criteria,
        order_by=Organization.id.desc(),
        limit=limit,
        offset=(page - 1) * limit,
    )
    return orgs, total


async def delete_organization(
    db: AsyncSession,
    principal: Principal,
    org_id: int,
    confirmation: str | None,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    """Remove an organization with its projects, milestones and agreements."""
    require(principal, Action.ORGANIZATION_DELETE)
    if confirmation != settings.hard_delete_confirmation:
        raise ConfirmationRequired(
            f'Confirmation required. Send confirmation: "{settings.hard_delete_confirmation}"'
        )
    org = await Repository(db, Organization).find_by_id(org_id)
    if org is None:
        raise NotFoundError("Organization not found")

    async with transaction(db):
        snapshot = {"name": org.name, "user_id": org.user_id}
        removed = await delete_organization_rows(db, org)
        await emit_audit(
            db,
            sink,
            actor_id=principal.id,
            action="organization.delete",
            entity_type="organization",
            entity_id=org_id,
            details={**snapshot, "projects_removed": removed},
        )

    logger.warning("Admin %s deleted organization %s", principal.id, org_id)
    return Outcome(None, snapshot)
