"""
Project briefs and their milestones.

``/browse`` and project detail are public for open projects; every other
route requires a bearer token and is checked against the caller's
organization.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.api.v1.helpers.authentication import (
    get_current_principal,
    get_optional_principal,
)
from collabhub.core.principal import Principal
from collabhub.db.session import get_db
from collabhub.models.pydantic_models.projects import (
    MilestoneModel,
    MilestoneStatsModel,
    MilestoneTransitionResponse,
    ProjectListResponse,
    ProjectModel,
    ProjectReviewModel,
    ProjectTransitionResponse,
)
from collabhub.services import milestones, projects

router = APIRouter(prefix="/projects", tags=["Projects"])


# ── request / response schemas ────────────────────────────────────────────


class CreateProjectRequest(BaseModel):
    title: str | None = None
    problem: str | None = None
    outcomes: str | None = None
    methods_required: str | None = None
    timeline: str | None = None
    budget_min: float | None = None
    data_sensitivity: str | None = None
    status: str | None = None
    # admins only: the organization to create the project for
    org_id: int | None = None


class UpdateProjectRequest(BaseModel):
    title: str | None = None
    problem: str | None = None
    outcomes: str | None = None
    methods_required: str | None = None
    timeline: str | None = None
    budget_min: float | None = None
    data_sensitivity: str | None = None
    status: str | None = None


class CreateMilestoneRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    due_date: date | None = None
    status: str | None = None


# ── public ────────────────────────────────────────────────────────────────


@router.get("/browse", response_model=ProjectListResponse)
async def browse_projects(
    search: str | None = Query(None),
    methods: str | None = Query(None),
    timeline: str | None = Query(None),
    budget_min: float | None = Query(None, ge=0),
    budget_max: float | None = Query(None, ge=0),
    data_sensitivity: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List open projects. No authentication required."""
    items, total = await projects.browse_projects(
        db,
        search=search,
        methods=methods,
        timeline=timeline,
        budget_min=budget_min,
        budget_max=budget_max,
        data_sensitivity=data_sensitivity,
        page=page,
        limit=limit,
    )
    return ProjectListResponse(
        projects=[ProjectModel.model_validate(p) for p in items],
        total_count=total,
        page=page,
        limit=limit,
    )


# ── owner ─────────────────────────────────────────────────────────────────


@router.get("/mine", response_model=ProjectListResponse)
async def list_my_projects(
    status: str | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    items = await projects.list_own_projects(db, principal, status)
    return ProjectListResponse(
        projects=[ProjectModel.model_validate(p) for p in items],
        total_count=len(items),
    )


@router.post("/", response_model=ProjectModel, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    data = request.model_dump(exclude_unset=True)
    org_id = data.pop("org_id", None)
    outcome = await projects.create_project(db, principal, data, org_id=org_id)
    return ProjectModel.model_validate(outcome.entity)


@router.get("/{project_id}", response_model=ProjectModel)
async def get_project(
    project_id: int,
    principal: Principal | None = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    return ProjectModel.model_validate(
        await projects.get_project(db, principal, project_id)
    )


@router.put("/{project_id}", response_model=ProjectTransitionResponse)
async def update_project(
    project_id: int,
    request: UpdateProjectRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await projects.update_project(
        db, principal, project_id, request.model_dump(exclude_unset=True)
    )
    return ProjectTransitionResponse(
        project=ProjectModel.model_validate(outcome.entity),
        previous_status=outcome.previous_state.value,
        message="Project updated successfully",
    )


@router.delete("/{project_id}", response_model=ProjectTransitionResponse)
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


@router.post("/{project_id}/submit", response_model=ProjectTransitionResponse)
async def submit_for_review(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Move a draft (or a project sent back for revision) into review."""
    outcome = await projects.submit_for_review(db, principal, project_id)
    return ProjectTransitionResponse(
        project=ProjectModel.model_validate(outcome.entity),
        previous_status=outcome.previous_state.value,
        message="Project submitted for review",
    )


@router.get("/{project_id}/reviews", response_model=list[ProjectReviewModel])
async def list_reviews(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    reviews = await projects.list_reviews(db, principal, project_id)
    return [ProjectReviewModel.model_validate(r) for r in reviews]


# ── milestones ────────────────────────────────────────────────────────────


@router.get("/{project_id}/milestones", response_model=list[MilestoneModel])
async def list_milestones(
    project_id: int,
    status: str | None = Query(None),
    overdue: bool | None = Query(None),
    principal: Principal | None = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    items = await milestones.list_milestones(
        db, principal, project_id, status=status, overdue=overdue
    )
    return [MilestoneModel.from_milestone(m) for m in items]


@router.get("/{project_id}/milestones/stats", response_model=MilestoneStatsModel)
async def milestone_stats(
    project_id: int,
    principal: Principal | None = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    return MilestoneStatsModel(
        **await milestones.get_milestone_stats(db, principal, project_id)
    )


@router.post(
    "/{project_id}/milestones",
    response_model=MilestoneTransitionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_milestone(
    project_id: int,
    request: CreateMilestoneRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await milestones.create_milestone(
        db, principal, project_id, request.model_dump(exclude_unset=True)
    )
    return MilestoneTransitionResponse(
        milestone=MilestoneModel.from_milestone(outcome.entity),
        message="Milestone created successfully",
    )
