"""
Response models for projects, their review trail and milestones.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from collabhub.core.lifecycle.milestone import (
    days_until_due,
    effective_status,
    is_overdue,
)
from collabhub.models.milestones import Milestone


class ProjectModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    title: str
    problem: str | None = None
    outcomes: str | None = None
    methods_required: str | None = None
    timeline: str | None = None
    budget_min: float | None = None
    data_sensitivity: str | None = None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("budget_min", mode="before")
    @classmethod
    def decimal_to_float(cls, value):
        return float(value) if isinstance(value, Decimal) else value


class ProjectReviewModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    reviewer_id: int | None = None
    action: str
    previous_status: str | None = None
    new_status: str
    feedback: str | None = None
    changes_requested: str | None = None
    reviewed_at: datetime | None = None


class ProjectListResponse(BaseModel):
    projects: list[ProjectModel]
    total_count: int
    page: int | None = None
    limit: int | None = None


class ProjectTransitionResponse(BaseModel):
    project: ProjectModel | None = None
    previous_status: str | None = None
    message: str


class MilestoneModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    name: str
    description: str | None = None
    due_date: date | None = None
    status: str
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # derived at read time, never stored
    is_overdue: bool = False
    days_until_due: int | None = None
    effective_status: str | None = None

    @classmethod
    def from_milestone(
        cls, milestone: Milestone, now: datetime | None = None
    ) -> "MilestoneModel":
        return cls.model_validate(milestone).model_copy(
            update={
                "is_overdue": is_overdue(milestone, now),
                "days_until_due": days_until_due(milestone, now),
                "effective_status": effective_status(milestone),
            }
        )


class MilestoneTransitionResponse(BaseModel):
    milestone: MilestoneModel | None = None
    previous_status: str | None = None
    message: str


class MilestoneStatsModel(BaseModel):
    total: int
    pending: int
    in_progress: int
    completed: int
    cancelled: int
    overdue: int
    completion_rate: int


class MilestoneListResponse(BaseModel):
    milestones: list[MilestoneModel]
    total_count: int
    page: int
    limit: int
