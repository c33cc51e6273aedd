"""
Admin endpoints: dashboard, user lifecycle, project review and moderation.

Every route requires an admin Principal; the checks happen in the service
layer so non-admin callers get a RoleForbidden error with a reason code.
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.api.v1.helpers.authentication import get_current_principal
from collabhub.api.v1.helpers.responses import success_response
from collabhub.core.principal import Principal
from collabhub.db.session import get_db
from collabhub.models.pydantic_models.profiles import (
    AuditLogListResponse,
    AuditLogModel,
    OrganizationListResponse,
    OrganizationModel,
)
from collabhub.models.pydantic_models.projects import (
    MilestoneListResponse,
    MilestoneModel,
    MilestoneTransitionResponse,
    ProjectListResponse,
    ProjectModel,
    ProjectTransitionResponse,
)
from collabhub.models.pydantic_models.users import (
    UserListResponse,
    UserModel,
    UserTransitionResponse,
)
from collabhub.services import accounts, admin, milestones, profiles, projects

router = APIRouter(prefix="/admin", tags=["Admin"])


# ── request / response schemas ────────────────────────────────────────────


class SetStatusRequest(BaseModel):
    status: str


class SuspendRequest(BaseModel):
    reason: str | None = None


class ReviewRequest(BaseModel):
    feedback: str | None = None


class RejectRequest(BaseModel):
    rejection_reason: str | None = None


class RequestChangesRequest(BaseModel):
    changes_requested: str | None = None
    feedback: str | None = None


def _user_transition(outcome, message: str) -> UserTransitionResponse:
    return UserTransitionResponse(
        user=UserModel.model_validate(outcome.entity) if outcome.entity else None,
        previous_state=outcome.previous_state.as_dict(),
        message=message,
    )


def _project_transition(outcome, message: str) -> ProjectTransitionResponse:
    return ProjectTransitionResponse(
        project=ProjectModel.model_validate(outcome.entity),
        previous_status=outcome.previous_state.value,
        message=message,
    )


# ── dashboard ─────────────────────────────────────────────────────────────


@router.get("/stats")
async def dashboard_stats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return {"stats": await admin.dashboard_stats(db, principal)}


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    entity_type: str | None = Query(None),
    entity_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    logs, total = await admin.list_audit_logs(
        db,
        principal,
        entity_type=entity_type,
        entity_id=entity_id,
        page=page,
        limit=limit,
    )
    return AuditLogListResponse(
        logs=[AuditLogModel.model_validate(entry) for entry in logs],
        total_count=total,
        page=page,
        limit=limit,
    )


# ── users ─────────────────────────────────────────────────────────────────


@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: str | None = Query(None),
    status: str | None = Query(None),
    search: str | None = Query(None),
    include_deleted: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    users, total = await accounts.list_users(
        db,
        principal,
        role=role,
        status=status,
        search=search,
        include_deleted=include_deleted,
        page=page,
        limit=limit,
    )
    return UserListResponse(
        users=[UserModel.model_validate(u) for u in users],
        total_count=total,
        page=page,
        limit=limit,
    )


@router.get("/users/pending", response_model=list[UserModel])
async def list_pending_users(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    users = await accounts.list_pending_users(db, principal)
    return [UserModel.model_validate(u) for u in users]


@router.get("/users/{user_id}", response_model=UserModel)
async def get_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """User detail, including soft-deleted accounts."""
    return UserModel.model_validate(await accounts.get_user(db, principal, user_id))


@router.put("/users/{user_id}/status", response_model=UserTransitionResponse)
async def set_user_status(
    user_id: int,
    request: SetStatusRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await accounts.set_user_status(db, principal, user_id, request.status)
    return _user_transition(outcome, "User status updated successfully")


@router.post("/users/{user_id}/approve", response_model=UserTransitionResponse)
async def approve_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await accounts.approve_user(db, principal, user_id)
    return _user_transition(outcome, "User approved successfully")


@router.post("/users/{user_id}/suspend", response_model=UserTransitionResponse)
async def suspend_user(
    user_id: int,
    request: SuspendRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await accounts.suspend_user(db, principal, user_id, request.reason)
    return _user_transition(outcome, "User suspended successfully")


@router.post("/users/{user_id}/unsuspend", response_model=UserTransitionResponse)
async def unsuspend_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await accounts.unsuspend_user(db, principal, user_id)
    return _user_transition(outcome, "User unsuspended successfully")


@router.post("/users/{user_id}/restore", response_model=UserTransitionResponse)
async def restore_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await accounts.restore_user(db, principal, user_id)
    return _user_transition(outcome, "User restored successfully")


@router.delete("/users/{user_id}", response_model=UserTransitionResponse)
async def hard_delete_user(
    user_id: int,
    confirmation: str | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Permanently delete a user. Requires ``?confirmation=DELETE``."""
    outcome = await accounts.hard_delete_user(db, principal, user_id, confirmation)
    return _user_transition(outcome, "User permanently deleted")


# ── projects ──────────────────────────────────────────────────────────────


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    status: str | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    items, total = await projects.list_projects(
        db, principal, status=status, search=search, page=page, limit=limit
    )
    return ProjectListResponse(
        projects=[ProjectModel.model_validate(p) for p in items],
        total_count=total,
        page=page,
        limit=limit,
    )


@router.get("/projects/pending", response_model=ProjectListResponse)
async def list_pending_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Projects awaiting review or revision."""
    items, total = await projects.list_awaiting_review(
        db, principal, page=page, limit=limit
    )
    return ProjectListResponse(
        projects=[ProjectModel.model_validate(p) for p in items],
        total_count=total,
        page=page,
        limit=limit,
    )


@router.post("/projects/{project_id}/approve", response_model=ProjectTransitionResponse)
async def approve_project(
    project_id: int,
    request: ReviewRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await projects.approve_project(
        db, principal, project_id, request.feedback
    )
    return _project_transition(outcome, "Project approved successfully")


@router.post("/projects/{project_id}/reject", response_model=ProjectTransitionResponse)
async def reject_project(
    project_id: int,
    request: RejectRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await projects.reject_project(
        db, principal, project_id, request.rejection_reason
    )
    return _project_transition(outcome, "Project rejected")


@router.post(
    "/projects/{project_id}/request-changes", response_model=ProjectTransitionResponse
)
async def request_project_changes(
    project_id: int,
    request: RequestChangesRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await projects.request_changes(
        db, principal, project_id, request.changes_requested, request.feedback
    )
    return _project_transition(outcome, "Changes requested")


@router.delete("/projects/{project_id}", response_model=ProjectTransitionResponse)
async def delete_project(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await projects.delete_project(db, principal, project_id)
    return ProjectTransitionResponse(
        previous_status=outcome.previous_state.value,
        message="Project deleted successfully",
    )


# ── moderation ────────────────────────────────────────────────────────────


@router.get("/milestones", response_model=MilestoneListResponse)
async def list_milestones(
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Milestones across every project, soonest due first."""
    items, total = await milestones.list_all_milestones(
        db, principal, status=status, page=page, limit=limit
    )
    return MilestoneListResponse(
        milestones=[MilestoneModel.from_milestone(m) for m in items],
        total_count=total,
        page=page,
        limit=limit,
    )


@router.delete("/milestones/{milestone_id}", response_model=MilestoneTransitionResponse)
async def delete_milestone(
    milestone_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await milestones.delete_milestone(db, principal, milestone_id)
    return MilestoneTransitionResponse(
        previous_status=outcome.previous_state.value,
        message="Milestone deleted successfully",
    )


@router.get("/organizations", response_model=OrganizationListResponse)
async def list_organizations(
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    orgs, total = await profiles.list_organizations(
        db, principal, search=search, page=page, limit=limit
    )
    return OrganizationListResponse(
        organizations=[OrganizationModel.model_validate(o) for o in orgs],
        total_count=total,
        page=page,
        limit=limit,
    )


@router.delete("/organizations/{org_id}")
async def delete_organization(
    org_id: int,
    confirmation: str | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete an organization and all of its projects. Requires ``?confirmation=DELETE``."""
    outcome = await profiles.delete_organization(db, principal, org_id, confirmation)
    return success_response(
        message="Organization deleted successfully", data=outcome.previous_state
    )
