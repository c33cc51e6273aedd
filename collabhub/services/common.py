"""
Shared pieces of the service layer: the result shape returned by every
mutating operation, target construction for the policy, and the explicit
cascades used by hard deletes.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.core.errors import NotFoundError
from collabhub.core.policy import Target
from collabhub.core.trail import AuditEvent, AuditSink, SqlAuditSink
from collabhub.db.repository import Repository
from collabhub.models import (
    AcademicHistory,
    Agreement,
    Certification,
    Milestone,
    Organization,
    Project,
    ProjectReview,
    ProjectStatus,
    ResearcherProfile,
    Role,
    User,
    UserPreferences,
)

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    """``entity`` after the operation; ``previous_state`` before it, if any."""

    entity: Any
    previous_state: Any = None


def project_target(project: Project) -> Target:
    return Target(
        org_id=project.org_id, project_status=ProjectStatus(project.status)
    )


def user_target(user: User) -> Target:
    return Target(user_id=user.id, user_role=Role(user.role))


def audit_sink(db: AsyncSession, sink: AuditSink | None = None) -> AuditSink:
    return sink if sink is not None else SqlAuditSink(db)


async def emit_audit(
    db: AsyncSession,
    sink: AuditSink | None,
    *,
    actor_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int,
    details: dict | None = None,
) -> None:
    await audit_sink(db, sink).emit(
        AuditEvent(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        )
    )


async def get_project_or_404(db: AsyncSession, project_id: int) -> Project:
    project = await Repository(db, Project).find_by_id(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


# ── cascades ──────────────────────────────────────────────────────────────


async def delete_project_rows(db: AsyncSession, project_ids: list[int]) -> None:
    """Remove projects together with their milestones and review history."""
    if not project_ids:
        return
    await Repository(db, Milestone).delete_where(Milestone.project_id.in_(project_ids))
    await Repository(db, ProjectReview).delete_where(
        ProjectReview.project_id.in_(project_ids)
    )
    await Repository(db, Project).delete_where(Project.id.in_(project_ids))


async def delete_organization_rows(db: AsyncSession, org: Organization) -> int:
    """Remove an organization and everything hanging off it.

    Returns the number of projects removed.
    """
    project_ids = list(
        (await db.execute(select(Project.id).where(Project.org_id == org.id)))
        .scalars()
        .all()
    )
    await delete_project_rows(db, project_ids)
    await Repository(db, Agreement).delete_where(Agreement.org_id == org.id)
    await Repository(db, Organization).delete_where(Organization.id == org.id)
    return len(project_ids)


async def delete_user_rows(db: AsyncSession, user: User) -> None:
    """Remove a user row and every row it owns."""
    orgs = await Repository(db, Organization).find_where(Organization.user_id == user.id)
    for org in orgs:
        await delete_organization_rows(db, org)

    await Repository(db, Agreement).delete_where(
        Agreement.researcher_id == user.id
    )
    await Repository(db, AcademicHistory).delete_where(
        AcademicHistory.user_id == user.id
    )
    await Repository(db, Certification).delete_where(Certification.user_id == user.id)
    await Repository(db, ResearcherProfile).delete_where(
        ResearcherProfile.user_id == user.id
    )
    await Repository(db, UserPreferences).delete_where(
        UserPreferences.user_id == user.id
    )
    await Repository(db, User).hard_delete(user)
