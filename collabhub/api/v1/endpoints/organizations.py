"""
The caller's own organization (nonprofit accounts only).
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.api.v1.helpers.authentication import get_current_principal
from collabhub.core.principal import Principal
from collabhub.db.session import get_db
from collabhub.models.pydantic_models.profiles import OrganizationModel
from collabhub.services import profiles

router = APIRouter(prefix="/organizations", tags=["Organizations"])


class SaveOrganizationRequest(BaseModel):
    name: str | None = None
    ein: str | None = None
    mission: str | None = None
    focus_tags: str | None = None
    compliance_flags: str | None = None
    contacts: str | None = None


@router.get("/me", response_model=OrganizationModel)
async def get_my_organization(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return OrganizationModel.model_validate(
        await profiles.get_organization(db, principal)
    )


@router.put("/me", response_model=OrganizationModel)
async def save_my_organization(
    request: SaveOrganizationRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Create the organization on first save, update it afterwards."""
    outcome = await profiles.save_organization(
        db, principal, request.model_dump(exclude_none=True)
    )
    return OrganizationModel.model_validate(outcome.entity)
