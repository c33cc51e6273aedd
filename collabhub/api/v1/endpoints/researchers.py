"""
The caller's own researcher profile, credentials and collaborations
(researcher accounts only).
"""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.api.v1.helpers.authentication import get_current_principal
from collabhub.api.v1.helpers.responses import success_response
from collabhub.core.principal import Principal
from collabhub.db.session import get_db
from collabhub.models.pydantic_models.profiles import (
    AcademicHistoryModel,
    CertificationModel,
    ResearcherProfileModel,
)
from collabhub.models.pydantic_models.projects import ProjectListResponse, ProjectModel
from collabhub.services import credentials, profiles, projects
from collabhub.services.credentials import ACADEMIC_HISTORY, CERTIFICATION

router = APIRouter(prefix="/researchers", tags=["Researchers"])


class SaveResearcherProfileRequest(BaseModel):
    affiliation: str | None = None
    domains: str | None = None
    methods: str | None = None
    tools: str | None = None
    rate_min: float | None = None
    rate_max: float | None = None
    availability: str | None = None


class AcademicHistoryRequest(BaseModel):
    degree: str | None = None
    field: str | None = None
    institution: str | None = None
    year: str | None = None


class CertificationRequest(BaseModel):
    name: str | None = None
    issuer: str | None = None
    year: str | None = None
    credential_id: str | None = None


@router.get("/me", response_model=ResearcherProfileModel)
async def get_my_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return ResearcherProfileModel.model_validate(
        await profiles.get_researcher_profile(db, principal)
    )


@router.put("/me", response_model=ResearcherProfileModel)
async def save_my_profile(
    request: SaveResearcherProfileRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await profiles.save_researcher_profile(
        db, principal, request.model_dump(exclude_none=True)
    )
    return ResearcherProfileModel.model_validate(outcome.entity)


@router.get("/me/projects", response_model=ProjectListResponse)
async def list_my_projects(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Projects of the organizations the caller has agreements with."""
    items = await projects.list_collaborations(db, principal)
    return ProjectListResponse(
        projects=[ProjectModel.model_validate(p) for p in items],
        total_count=len(items),
    )


# ── academic history ──────────────────────────────────────────────────────


@router.get("/me/academic", response_model=list[AcademicHistoryModel])
async def list_academic_history(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    entries = await credentials.list_entries(db, principal, ACADEMIC_HISTORY)
    return [AcademicHistoryModel.model_validate(e) for e in entries]


@router.post(
    "/me/academic",
    response_model=AcademicHistoryModel,
    status_code=status.HTTP_201_CREATED,
)
async def add_academic_history(
    request: AcademicHistoryRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    entry = await credentials.add_entry(
        db, principal, ACADEMIC_HISTORY, request.model_dump(exclude_none=True)
    )
    return AcademicHistoryModel.model_validate(entry)


@router.put("/me/academic/{entry_id}", response_model=AcademicHistoryModel)
async def update_academic_history(
    entry_id: int,
    request: AcademicHistoryRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    entry = await credentials.update_entry(
        db, principal, ACADEMIC_HISTORY, entry_id, request.model_dump(exclude_none=True)
    )
    return AcademicHistoryModel.model_validate(entry)


@router.delete("/me/academic/{entry_id}")
async def delete_academic_history(
    entry_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await credentials.delete_entry(db, principal, ACADEMIC_HISTORY, entry_id)
    return success_response(message="Academic history entry deleted successfully")


# ── certifications ────────────────────────────────────────────────────────


@router.get("/me/certifications", response_model=list[CertificationModel])
async def list_certifications(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    entries = await credentials.list_entries(db, principal, CERTIFICATION)
    return [CertificationModel.model_validate(e) for e in entries]


@router.post(
    "/me/certifications",
    response_model=CertificationModel,
    status_code=status.HTTP_201_CREATED,
)
async def add_certification(
    request: CertificationRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    entry = await credentials.add_entry(
        db, principal, CERTIFICATION, request.model_dump(exclude_none=True)
    )
    return CertificationModel.model_validate(entry)


@router.put("/me/certifications/{entry_id}", response_model=CertificationModel)
async def update_certification(
    entry_id: int,
    request: CertificationRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    entry = await credentials.update_entry(
        db, principal, CERTIFICATION, entry_id, request.model_dump(exclude_none=True)
    )
    return CertificationModel.model_validate(entry)


@router.delete("/me/certifications/{entry_id}")
async def delete_certification(
    entry_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await credentials.delete_entry(db, principal, CERTIFICATION, entry_id)
    return success_response(message="Certification deleted successfully")
