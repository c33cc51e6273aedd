"""Admin dashboard statistics and audit log access."""

from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.core.policy import Action, require
from collabhub.core.principal import Principal
from collabhub.db.repository import Repository
from collabhub.models import (
    AccountStatus,
    AuditLog,
    Milestone,
    MilestoneStatus,
    Organization,
    Project,
    ProjectStatus,
    Role,
    User,
)


async def dashboard_stats(db: AsyncSession, principal: Principal) -> dict[str, int]:
    require(principal, Action.ADMIN_DASHBOARD)

    users = Repository(db, User)
    projects = Repository(db, Project)
    milestones = Repository(db, Milestone)

    stats = {
        "total_users": await users.count_where(),
        "suspended_users": await users.count_where(
            User.deleted_at.is_not(None), include_deleted=True
        ),
        "pending_approval": await users.count_where(
            User.account_status == AccountStatus.PENDING.value
        ),
        "total_organizations": await Repository(db, Organization).count_where(),
        "total_projects": await projects.count_where(),
        "open_projects": await projects.count_where(
            Project.status == ProjectStatus.OPEN.value
        ),
        "draft_projects": await projects.count_where(
            Project.status == ProjectStatus.DRAFT.value
        ),
        "pending_review_projects": await projects.count_where(
            Project.status == ProjectStatus.PENDING_REVIEW.value
        ),
        "total_milestones": await milestones.count_where(),
    }
    for role in Role:
        stats[f"{role.value}_users"] = await users.count_where(User.role == role.value)
    for status in MilestoneStatus:
        stats[f"{status.value}_milestones"] = await milestones.count_where(
            Milestone.status == status.value
        )
    return stats


async def list_audit_logs(
    db: AsyncSession,
    principal: Principal,
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[AuditLog], int]:
    require(principal, Action.ADMIN_BROWSE)
    criteria = []
    if entity_type:
        criteria.append(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        criteria.append(AuditLog.entity_id == entity_id)
    repo = Repository(db, AuditLog)
    total = await repo.count_where(*criteria)
    logs = await repo.find_where(
        *criteria,
        order_by=[AuditLog.timestamp.desc(), AuditLog.id.desc()],
        limit=limit,
        offset=(page - 1) * limit,
    )
    return logs, total
