"""
Project operations: public browse, owner CRUD, submission and admin review.

Review-workflow transitions (submit, approve, reject, request changes)
append a ProjectReview row; admin-triggered transitions also emit an
AuditEvent.
"""

import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.core.errors import NotFoundError, ValidationError
from collabhub.core.lifecycle.project import (
    ProjectEvent,
    clean_budget,
    clean_title,
    parse_project_status,
    transition,
)
from collabhub.core.policy import Action, Target, require
from collabhub.core.principal import Principal
from collabhub.core.trail import AuditSink, append_review
from collabhub.db.repository import Repository, transaction
from collabhub.models import (
    Agreement,
    Organization,
    Project,
    ProjectReview,
    ProjectStatus,
)
from collabhub.services.common import (
    Outcome,
    delete_project_rows,
    emit_audit,
    get_project_or_404,
    project_target,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title",
    "problem",
    "outcomes",
    "methods_required",
    "timeline",
    "budget_min",
    "data_sensitivity",
)

AWAITING_REVIEW = (ProjectStatus.PENDING_REVIEW.value, ProjectStatus.NEEDS_REVISION.value)
# past review; what a collaborating researcher gets to see
COLLABORATION_STATUSES = tuple(
    s.value
    for s in (
        ProjectStatus.APPROVED,
        ProjectStatus.OPEN,
        ProjectStatus.IN_PROGRESS,
        ProjectStatus.COMPLETED,
        ProjectStatus.CANCELLED,
    )
)


def _clean_fields(changes: dict) -> dict:
    values = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
    if "title" in values:
        values["title"] = clean_title(values["title"])
    if "budget_min" in values:
        values["budget_min"] = clean_budget(values["budget_min"])
    return values


# ── public ────────────────────────────────────────────────────────────────


async def browse_projects(
    db: AsyncSession,
    *,
    search: str | None = None,
    methods: str | None = None,
    timeline: str | None = None,
    budget_min: float | None = None,
    budget_max: float | None = None,
    data_sensitivity: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Project], int]:
    """Open projects only, newest first."""
    require(None, Action.PROJECT_BROWSE)

    criteria = [Project.status == ProjectStatus.OPEN.value]
    if search:
        pattern = f"%{search}%"
        criteria.append(
            or_(
                Project.title.ilike(pattern),
                Project.problem.ilike(pattern),
                Project.outcomes.ilike(pattern),
                Project.methods_required.ilike(pattern),
            )
        )
    if methods:
        criteria.append(Project.methods_required.ilike(f"%{methods}%"))
    if timeline:
        criteria.append(Project.timeline.ilike(f"%{timeline}%"))
    if budget_min is not None:
        criteria.append(Project.budget_min >= budget_min)
    if budget_max is not None:
        criteria.append(Project.budget_min <= budget_max)
    if data_sensitivity:
        criteria.append(Project.data_sensitivity == data_sensitivity)

    repo = Repository(db, Project)
    total = await repo.count_where(*criteria)
    projects = await repo.find_where(
        *criteria,
        order_by=Project.id.desc(),
        limit=limit,
        offset=(page - 1) * limit,
    )
    return projects, total


async def get_project(
    db: AsyncSession, principal: Principal | None, project_id: int
) -> Project:
    """Open projects are public; anything else only to its owner or an admin."""
    project = await get_project_or_404(db, project_id)
    require(
        principal,
        Action.PROJECT_READ,
        project_target(project),
        not_found_message="Project not found or not available",
    )
    return project


# ── researcher ────────────────────────────────────────────────────────────


async def list_collaborations(db: AsyncSession, principal: Principal) -> list[Project]:
    """Projects of every organization the researcher has an agreement with."""
    require(principal, Action.PROJECT_LIST_COLLABORATIONS)
    partner_orgs = select(Agreement.org_id).where(
        Agreement.researcher_id == principal.id
    )
    return await Repository(db, Project).find_where(
        Project.org_id.in_(partner_orgs),
        Project.status.in_(COLLABORATION_STATUSES),
        order_by=[Project.updated_at.desc(), Project.id.desc()],
    )


# ── owner ─────────────────────────────────────────────────────────────────


async def list_own_projects(
    db: AsyncSession, principal: Principal, status: str | None = None
) -> list[Project]:
    """The caller's organization's projects; every project for an admin."""
    require(principal, Action.PROJECT_LIST_OWN)

    criteria = []
    if status:
        criteria.append(Project.status == parse_project_status(status).value)
    if not principal.is_admin:
        if principal.org_id is None:
            raise NotFoundError("Organization not found for this user")
        criteria.append(Project.org_id == principal.org_id)
    return await Repository(db, Project).find_where(
        *criteria, order_by=Project.id.desc()
    )


async def create_project(
    db: AsyncSession,
    principal: Principal,
    data: dict,
    *,
    org_id: int | None = None,
) -> Outcome:
    """Create a project for the caller's organization.

    Admins must name the organization; a nonprofit always creates for its
    own and any ``org_id`` it sends has to match.
    """
    require(principal, Action.PROJECT_CREATE)
    if principal.is_admin:
        if org_id is None:
            raise ValidationError("org_id is required")
    else:
        if principal.org_id is None:
            raise NotFoundError(
                "Organization not found. Please complete your organization profile first."
            )
        org_id = org_id if org_id is not None else principal.org_id
    require(principal, Action.PROJECT_CREATE, Target(org_id=org_id))

    if await Repository(db, Organization).find_by_id(org_id) is None:
        raise NotFoundError("Organization not found")

    values = _clean_fields(data)
    values["title"] = clean_title(data.get("title"))
    status = parse_project_status(data.get("status") or ProjectStatus.DRAFT.value)

    async with transaction(db):
        project = await Repository(db, Project).create(
            org_id=org_id, status=status.value, **values
        )

    logger.info(
        "Project %s created for organization %s in %s", project.id, org_id, status.value
    )
    return Outcome(project)


async def update_project(
    db: AsyncSession,
    principal: Principal,
    project_id: int,
    changes: dict,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    """Edit fields and, optionally, set any declared status.

    ``previous_state`` is the status before the edit.
    """
    project = await get_project_or_404(db, project_id)
    require(principal, Action.PROJECT_EDIT, project_target(project))

    values = _clean_fields(changes)
    status = changes.get("status")
    if not values and status is None:
        raise ValidationError("No valid update fields provided")

    async with transaction(db):
        previous = ProjectStatus(project.status)
        if status is not None:
            result = transition(project, ProjectEvent.SET_STATUS, status=status)
            if result.new != previous:
                logger.info(
                    "Project %s status %s -> %s",
                    project.id,
                    previous.value,
                    result.new.value,
                )
                if principal.is_admin:
                    await emit_audit(
                        db,
                        sink,
                        actor_id=principal.id,
                        action="project.set_status",
                        entity_type="project",
                        entity_id=project.id,
                        details={"previous": previous.value, "new": result.new.value},
                    )
        await Repository(db, Project).update(project, **values)

    return Outcome(project, previous)


async def delete_project(
    db: AsyncSession,
    principal: Principal,
    project_id: int,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    project = await get_project_or_404(db, project_id)
    require(principal, Action.PROJECT_DELETE, project_target(project))
    previous = ProjectStatus(project.status)

    async with transaction(db):
        await delete_project_rows(db, [project.id])
        if principal.is_admin:
            await emit_audit(
                db,
                sink,
                actor_id=principal.id,
                action="project.delete",
                entity_type="project",
                entity_id=project_id,
                details={"title": project.title, "status": previous.value},
            )

    logger.info("Project %s deleted by user %s", project_id, principal.id)
    return Outcome(None, previous)


async def submit_for_review(
    db: AsyncSession, principal: Principal, project_id: int
) -> Outcome:
    project = await get_project_or_404(db, project_id)
    require(principal, Action.PROJECT_SUBMIT, project_target(project))

    async with transaction(db):
        result = transition(project, ProjectEvent.SUBMIT)
        await db.flush()
        await append_review(db, project.id, result)

    logger.info(
        "Project %s status %s -> %s", project.id, result.previous.value, result.new.value
    )
    return Outcome(project, result.previous)


async def list_reviews(
    db: AsyncSession, principal: Principal, project_id: int
) -> list[ProjectReview]:
    project = await get_project_or_404(db, project_id)
    require(principal, Action.PROJECT_EDIT, project_target(project))
    return await Repository(db, ProjectReview).find_where(
        ProjectReview.project_id == project.id,
        order_by=[ProjectReview.reviewed_at.asc(), ProjectReview.id.asc()],
    )


# ── admin review ──────────────────────────────────────────────────────────


async def list_projects(
    db: AsyncSession,
    principal: Principal,
    *,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Project], int]:
    require(principal, Action.ADMIN_BROWSE)
    criteria = []
    if status:
        criteria.append(Project.status == parse_project_status(status).value)
    if search:
        pattern = f"%{search}%"
        criteria.append(or_(Project.title.ilike(pattern), Project.problem.ilike(pattern)))
    repo = Repository(db, Project)
    total = await repo.count_where(*criteria)
    projects = await repo.find_where(
        *criteria,
        order_by=Project.id.desc(),
        limit=limit,
        offset=(page - 1) * limit,
    )
    return projects, total


async def list_awaiting_review(
    db: AsyncSession, principal: Principal, *, page: int = 1, limit: int = 20
) -> tuple[list[Project], int]:
    require(principal, Action.PROJECT_REVIEW)
    criteria = [Project.status.in_(AWAITING_REVIEW)]
    repo = Repository(db, Project)
    total = await repo.count_where(*criteria)
    projects = await repo.find_where(
        *criteria,
        order_by=[Project.updated_at.asc(), Project.id.asc()],
        limit=limit,
        offset=(page - 1) * limit,
    )
    return projects, total


async def _review(
    db: AsyncSession,
    principal: Principal,
    project_id: int,
    event: ProjectEvent,
    *,
    feedback: str | None = None,
    changes_requested: str | None = None,
    sink: AuditSink | None = None,
) -> Outcome:
    require(principal, Action.PROJECT_REVIEW)
    project = await get_project_or_404(db, project_id)

    async with transaction(db):
        result = transition(project, event)
        await db.flush()
        await append_review(
            db,
            project.id,
            result,
            reviewer_id=principal.id,
            feedback=feedback,
            changes_requested=changes_requested,
        )
        await emit_audit(
            db,
            sink,
            actor_id=principal.id,
            action=f"project.{event.value}",
            entity_type="project",
            entity_id=project.id,
            details={"previous": result.previous.value, "new": result.new.value},
        )

    logger.info(
        "Admin %s: project %s status %s -> %s",
        principal.id,
        project.id,
        result.previous.value,
        result.new.value,
    )
    return Outcome(project, result.previous)


async def approve_project(
    db: AsyncSession,
    principal: Principal,
    project_id: int,
    feedback: str | None = None,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    return await _review(
        db, principal, project_id, ProjectEvent.APPROVE, feedback=feedback, sink=sink
    )


async def reject_project(
    db: AsyncSession,
    principal: Principal,
    project_id: int,
    reason: str | None,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    require(principal, Action.PROJECT_REVIEW)
    if not reason or not reason.strip():
        raise ValidationError("Rejection reason is required")
    return await _review(
        db, principal, project_id, ProjectEvent.REJECT, feedback=reason.strip(), sink=sink
    )


async def request_changes(
    db: AsyncSession,
    principal: Principal,
    project_id: int,
    changes_requested: str | None,
    feedback: str | None = None,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    require(principal, Action.PROJECT_REVIEW)
    if not changes_requested or not changes_requested.strip():
        raise ValidationError("Changes requested description is required")
    return await _review(
        db,
        principal,
        project_id,
        ProjectEvent.REQUEST_CHANGES,
        feedback=feedback,
        changes_requested=changes_requested.strip(),
        sink=sink,
    )
