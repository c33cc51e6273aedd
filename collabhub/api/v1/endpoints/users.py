"""
Self-service account endpoints: profile, password, preferences and
account deletion. Every route acts on the authenticated caller only.
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.api.v1.helpers.authentication import get_current_principal
from collabhub.api.v1.helpers.responses import success_response
from collabhub.core.principal import Principal
from collabhub.db.session import get_db
from collabhub.models.pydantic_models.users import (
    PreferencesModel,
    UserModel,
    UserTransitionResponse,
)
from collabhub.services import accounts

router = APIRouter(prefix="/users", tags=["Users"])


# ── request / response schemas ────────────────────────────────────────────


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    email: str | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class UpdatePreferencesRequest(BaseModel):
    email_notifications: bool | None = None
    email_messages: bool | None = None
    email_matches: bool | None = None
    email_milestones: bool | None = None
    email_project_updates: bool | None = None
    inapp_notifications: bool | None = None
    inapp_messages: bool | None = None
    inapp_matches: bool | None = None
    weekly_digest: bool | None = None
    monthly_report: bool | None = None
    marketing_emails: bool | None = None


# ── endpoints ─────────────────────────────────────────────────────────────


@router.get("/me", response_model=UserModel)
async def get_me(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Return the authenticated user's profile."""
    return UserModel.model_validate(await accounts.get_self(db, principal))


@router.put("/me", response_model=UserModel)
async def update_me(
    request: UpdateProfileRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await accounts.update_self(
        db, principal, name=request.name, email=request.email
    )
    return UserModel.model_validate(outcome.entity)


@router.put("/me/password")
async def change_password(
    request: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Change the current user's password."""
    await accounts.change_password(
        db, principal, request.current_password, request.new_password
    )
    return success_response(message="Password changed successfully")


@router.get("/me/preferences", response_model=PreferencesModel)
async def get_preferences(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return PreferencesModel.model_validate(
        await accounts.get_preferences(db, principal)
    )


@router.put("/me/preferences", response_model=PreferencesModel)
async def update_preferences(
    request: UpdatePreferencesRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    outcome = await accounts.update_preferences(
        db, principal, request.model_dump(exclude_none=True)
    )
    return PreferencesModel.model_validate(outcome.entity)


@router.delete("/me", response_model=UserTransitionResponse)
async def delete_me(
    reason: str | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete the caller's account. An admin can restore it."""
    outcome = await accounts.delete_self(db, principal, reason)
    return UserTransitionResponse(
        user=UserModel.model_validate(outcome.entity),
        previous_state=outcome.previous_state.as_dict(),
        message="Account deleted successfully",
    )
