"""
Principal resolution: bearer credential -> authenticated actor.

Decoding the credential is delegated to the ``decode`` callable (the JWT
helpers in ``collabhub.api.v1.helpers.authentication`` in production); this
module only applies the account-state rules on the resolved subject.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.core.errors import AuthError, Reason
from collabhub.core.lifecycle.account import AccountStateKind, account_state
from collabhub.models.iam import Organization, ResearcherProfile, Role, User


@dataclass(frozen=True)
class Principal:
    id: int
    role: Role
    account_status: str
    deleted_at: datetime | None = None
    org_id: int | None = None
    researcher_profile_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def ensure_authenticatable(user: User) -> None:
    """Raise ``AuthError`` unless the account may authenticate right now."""
    state = account_state(user)
    if state.kind in (AccountStateKind.DELETED, AccountStateKind.SUSPENDED):
        raise AuthError("Account has been suspended", Reason.ACCOUNT_SUSPENDED)
    if state.kind == AccountStateKind.PENDING:
        raise AuthError("Account pending approval", Reason.ACCOUNT_PENDING)


async def principal_for_user(user: User, db: AsyncSession) -> Principal:
    org_id = None
    profile_id = None
    if user.role == Role.NONPROFIT.value:
        org_id = (
            await db.execute(
                select(Organization.id).where(Organization.user_id == user.id)
            )
        ).scalar_one_or_none()
    elif user.role == Role.RESEARCHER.value:
        profile_id = (
            await db.execute(
                select(ResearcherProfile.user_id).where(
                    ResearcherProfile.user_id == user.id
                )
            )
        ).scalar_one_or_none()

    return Principal(
        id=user.id,
        role=Role(user.role),
        account_status=user.account_status,
        deleted_at=user.deleted_at,
        org_id=org_id,
        researcher_profile_id=profile_id,
    )


async def resolve_principal(
    credential: str | None,
    db: AsyncSession,
    decode: Callable[[str], int],
) -> Principal:
    """Resolve a bearer credential into a Principal.

    ``decode`` turns the credential into a subject id or raises ``AuthError``
    (``Expired`` / ``Malformed``). The subject is looked up including
    soft-deleted rows so that deletion is reported explicitly rather than as
    an unknown user. No side effects.
    """
    if not credential:
        raise AuthError("Authentication required", Reason.UNAUTHENTICATED)

    subject_id = decode(credential)

    user = (
        await db.execute(select(User).where(User.id == subject_id))
    ).scalar_one_or_none()
    if user is None:
        raise AuthError("Invalid token - user not found", Reason.UNAUTHENTICATED)

    ensure_authenticatable(user)
    return await principal_for_user(user, db)
