"""
Registration and login.

Both routes are public. Registration creates the user and its role-specific
profile row in one transaction; login refuses accounts that are pending,
suspended or deleted.
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.api.v1.helpers.authentication import token_for_user
from collabhub.db.session import get_db
from collabhub.models import AccountStatus
from collabhub.models.pydantic_models.users import AuthResponse, UserModel
from collabhub.services import accounts

router = APIRouter(prefix="/auth", tags=["Auth"])


# ── request / response schemas ────────────────────────────────────────────


class RegisterRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None
    organization_data: dict[str, Any] | None = None
    researcher_data: dict[str, Any] | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


# ── endpoints ─────────────────────────────────────────────────────────────


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create an account. No token is issued while approval is pending."""
    outcome = await accounts.register(
        db,
        name=request.name,
        email=request.email,
        password=request.password,
        role=request.role,
        organization_data=request.organization_data,
        researcher_data=request.researcher_data,
    )
    user = outcome.entity
    token = (
        token_for_user(user.id)
        if user.account_status == AccountStatus.ACTIVE.value
        else None
    )
    return AuthResponse(access_token=token, user=UserModel.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate with email + password and receive a JWT."""
    user, token = await accounts.login(db, request.email, request.password)
    return AuthResponse(access_token=token, user=UserModel.model_validate(user))
