"""
Single-milestone routes. Listing and creation live under
``/projects/{project_id}/milestones``.
"""

from datetime import date

from fastapi import APIRouter, Depends
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
    MilestoneTransitionResponse,
)
from collabhub.services import milestones

router = APIRouter(prefix="/milestones", tags=["Milestones"])


class UpdateMilestoneRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    due_date: date | None = None
    status: str | None = None


@router.get("/{milestone_id}", response_model=MilestoneModel)
async def get_milestone(
    milestone_id: int,
    principal: Principal | None = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    return MilestoneModel.from_milestone(
        await milestones.get_milestone(db, principal, milestone_id)
    )


@router.put("/{milestone_id}", response_model=MilestoneTransitionResponse)
async def update_milestone(
    milestone_id: int,
    request: UpdateMilestoneRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; moving into or out of ``completed`` manages completed_at."""
    outcome = await milestones.update_milestone(
        db, principal, milestone_id, request.model_dump(exclude_unset=True)
    )
    return MilestoneTransitionResponse(
        milestone=MilestoneModel.from_milestone(outcome.entity),
        previous_status=outcome.previous_state.value,
        message="Milestone updated successfully",
    )


@router.delete("/{milestone_id}", response_model=MilestoneTransitionResponse)
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
