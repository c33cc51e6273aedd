"""
Milestone operations and per-project reporting.

Milestones are visible wherever their project is visible and writable only
by the project's organization owner or an admin. ``completed_at`` is managed
entirely by the lifecycle transition.
"""

import logging
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.core.errors import NotFoundError, ValidationError
from collabhub.core.lifecycle.milestone import (
    clean_name,
    is_overdue,
    milestone_stats,
    parse_milestone_status,
    transition,
    validate_new_due_date,
)
from collabhub.core.policy import Action, require
from collabhub.core.principal import Principal
from collabhub.core.trail import AuditSink
from collabhub.db.repository import Repository, transaction
from collabhub.models import Milestone, MilestoneStatus, Project
from collabhub.services.common import (
    Outcome,
    emit_audit,
    get_project_or_404,
    project_target,
)

logger = logging.getLogger(__name__)


def _parse_due_date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError("due_date must be an ISO date (YYYY-MM-DD)") from None


async def _milestone_and_project(
    db: AsyncSession, milestone_id: int
) -> tuple[Milestone, Project]:
    milestone = await Repository(db, Milestone).find_by_id(milestone_id)
    if milestone is None:
        raise NotFoundError("Milestone not found")
    project = await Repository(db, Project).find_by_id(milestone.project_id)
    if project is None:
        raise NotFoundError("Milestone not found")
    return milestone, project


async def list_milestones(
    db: AsyncSession,
    principal: Principal | None,
    project_id: int,
    *,
    status: str | None = None,
    overdue: bool | None = None,
    now: datetime | None = None,
) -> list[Milestone]:
    """Milestones ordered by due date (undated last), then newest first."""
    project = await get_project_or_404(db, project_id)
    require(principal, Action.MILESTONE_READ, project_target(project))

    criteria = [Milestone.project_id == project.id]
    if status:
        criteria.append(Milestone.status == parse_milestone_status(status).value)
    milestones = await Repository(db, Milestone).find_where(
        *criteria,
        order_by=[
            Milestone.due_date.is_(None),
            Milestone.due_date.asc(),
            Milestone.created_at.desc(),
            Milestone.id.desc(),
        ],
    )
    if overdue is not None:
        now = now or datetime.now(timezone.utc)
        milestones = [m for m in milestones if is_overdue(m, now) == overdue]
    return milestones


async def get_milestone(
    db: AsyncSession, principal: Principal | None, milestone_id: int
) -> Milestone:
    milestone, project = await _milestone_and_project(db, milestone_id)
    require(
        principal,
        Action.MILESTONE_READ,
        project_target(project),
        not_found_message="Milestone not found",
    )
    return milestone


async def get_milestone_stats(
    db: AsyncSession,
    principal: Principal | None,
    project_id: int,
    now: datetime | None = None,
) -> dict[str, int]:
    project = await get_project_or_404(db, project_id)
    require(principal, Action.MILESTONE_READ, project_target(project))
    milestones = await Repository(db, Milestone).find_where(
        Milestone.project_id == project.id
    )
    return milestone_stats(milestones, now)


async def create_milestone(
    db: AsyncSession,
    principal: Principal,
    project_id: int,
    data: dict,
    *,
    now: datetime | None = None,
) -> Outcome:
    project = await get_project_or_404(db, project_id)
    require(principal, Action.MILESTONE_CREATE, project_target(project))

    now = now or datetime.now(timezone.utc)
    name = clean_name(data.get("name"))
    due_date = _parse_due_date(data.get("due_date"))
    validate_new_due_date(due_date, now)

    milestone = Milestone(
        project_id=project.id,
        name=name,
        description=data.get("description"),
        due_date=due_date,
    )
    transition(milestone, data.get("status") or MilestoneStatus.PENDING.value, now=now)

    async with transaction(db):
        db.add(milestone)
        await db.flush()

    logger.info("Milestone %s created on project %s", milestone.id, project.id)
    return Outcome(milestone)


async def update_milestone(
    db: AsyncSession,
    principal: Principal,
    milestone_id: int,
    changes: dict,
    *,
    now: datetime | None = None,
    sink: AuditSink | None = None,
) -> Outcome:
    """Edit fields and move status; ``previous_state`` is the old status.

    The due date is not re-validated here, so it may be moved into the past.
    """
    milestone, project = await _milestone_and_project(db, milestone_id)
    require(
        principal,
        Action.MILESTONE_EDIT,
        project_target(project),
        not_found_message="Milestone not found",
    )

    values = {}
    if "name" in changes:
        values["name"] = clean_name(changes["name"])
    if "description" in changes:
        values["description"] = changes["description"]
    if "due_date" in changes:
        values["due_date"] = _parse_due_date(changes["due_date"])
    status = changes.get("status")

    async with transaction(db):
        previous = MilestoneStatus(milestone.status)
        if status is not None:
            transition(milestone, status, now=now)
            if milestone.status != previous.value:
                logger.info(
                    "Milestone %s status %s -> %s",
                    milestone.id,
                    previous.value,
                    milestone.status,
                )
                if principal.is_admin:
                    await emit_audit(
                        db,
                        sink,
                        actor_id=principal.id,
                        action="milestone.set_status",
                        entity_type="milestone",
                        entity_id=milestone.id,
                        details={"previous": previous.value, "new": milestone.status},
                    )
        await Repository(db, Milestone).update(milestone, **values)

    return Outcome(milestone, previous)


async def delete_milestone(
    db: AsyncSession,
    principal: Principal,
    milestone_id: int,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    milestone, project = await _milestone_and_project(db, milestone_id)
    require(
        principal,
        Action.MILESTONE_DELETE,
        project_target(project),
        not_found_message="Milestone not found",
    )
    previous = MilestoneStatus(milestone.status)

    async with transaction(db):
        await Repository(db, Milestone).hard_delete(milestone)
        if principal.is_admin:
            await emit_audit(
                db,
                sink,
                actor_id=principal.id,
                action="milestone.delete",
                entity_type="milestone",
                entity_id=milestone_id,
                details={"project_id": project.id, "name": milestone.name},
            )

    logger.info("Milestone %s deleted by user %s", milestone_id, principal.id)
    return Outcome(None, previous)


async def list_all_milestones(
    db: AsyncSession,
    principal: Principal,
    *,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Milestone], int]:
    """Every milestone across all projects, soonest due first."""
    require(principal, Action.ADMIN_BROWSE)
    criteria = []
    if status:
        criteria.append(Milestone.status == parse_milestone_status(status).value)
    repo = Repository(db, Milestone)
    total = await repo.count_where(*criteria)
    milestones = await repo.find_where(
        *criteria,
        order_by=[
            Milestone.due_date.is_(None),
            Milestone.due_date.asc(),
            Milestone.id.asc(),
        ],
        limit=limit,
        offset=(page - 1) * limit,
    )
    return milestones, total
