"""
Account operations: registration, login, self-service and admin lifecycle.

Every mutating operation follows the same path: authorize against the
Principal, apply the account state machine, append the audit trail and
persist, all inside one transaction.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.api.v1.helpers.authentication import (
    hash_password,
    token_for_user,
    verify_password,
)
from collabhub.config import settings
from collabhub.core.errors import (
    AuthError,
    ConfirmationRequired,
    ConflictError,
    NotFoundError,
    Reason,
    RoleForbidden,
    ValidationError,
)
from collabhub.core.lifecycle.account import (
    AccountEvent,
    AccountState,
    parse_account_status,
    plan,
)
from collabhub.core.policy import Action, Target, require
from collabhub.core.principal import Principal, ensure_authenticatable
from collabhub.core.trail import AuditSink
from collabhub.db.repository import Repository, transaction
from collabhub.models import (
    AccountStatus,
    Organization,
    ResearcherProfile,
    Role,
    User,
    UserPreferences,
)
from collabhub.models.iam.users import PREFERENCE_FIELDS
from collabhub.services.common import (
    Outcome,
    delete_user_rows,
    emit_audit,
    user_target,
)

logger = logging.getLogger(__name__)

ORGANIZATION_FIELDS = (
    "name",
    "ein",
    "mission",
    "focus_tags",
    "compliance_flags",
    "contacts",
)
RESEARCHER_FIELDS = (
    "affiliation",
    "domains",
    "methods",
    "tools",
    "rate_min",
    "rate_max",
    "availability",
)


def normalize_email(email) -> str:
    return str(email or "").strip().lower()


def parse_role(value) -> Role:
    try:
        return Role(value)
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationError(f"Invalid role. Must be one of: {allowed}") from None


def _rate(value, field: str) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if not rate.is_finite() or rate < 0:
        raise ValidationError(f"{field} must be a non-negative number")
    return rate


def clean_researcher_data(data: dict) -> dict:
    values = {k: data[k] for k in RESEARCHER_FIELDS if k in data}
    for field in ("rate_min", "rate_max"):
        if field in values:
            values[field] = _rate(values[field], field)
    rate_min, rate_max = values.get("rate_min"), values.get("rate_max")
    if rate_min is not None and rate_max is not None and rate_min > rate_max:
        raise ValidationError("rate_min must be less than rate_max")
    return values


async def _email_taken(db: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    criteria = [User.email == email]
    if exclude_id is not None:
        criteria.append(User.id != exclude_id)
    return await Repository(db, User).find_one(*criteria) is not None


async def _get_user_or_404(
    db: AsyncSession, user_id: int, *, include_deleted: bool = False
) -> User:
    user = await Repository(db, User).find_by_id(user_id, include_deleted=include_deleted)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _apply(
    db: AsyncSession, user: User, event: AccountEvent, **kwargs
) -> AccountState:
    """Fire ``event`` on ``user`` and persist it through the repository verbs."""
    previous, changes = plan(user, event, **kwargs)
    users = Repository(db, User)
    if event in (AccountEvent.SUSPEND, AccountEvent.DELETE_SELF):
        await users.soft_delete(user, changes.pop("deleted_at"), **changes)
    elif event == AccountEvent.RESTORE:
        changes.pop("deleted_at")
        await users.restore(user, **changes)
    elif changes:
        await users.update(user, **changes)
    return previous


# ── registration and login ────────────────────────────────────────────────


async def register(
    db: AsyncSession,
    *,
    name: str | None,
    email: str | None,
    password: str | None,
    role: str | None = None,
    organization_data: dict | None = None,
    researcher_data: dict | None = None,
) -> Outcome:
    if not name or not str(name).strip() or not email or not password:
        raise ValidationError("name, email and password are required")

    role = parse_role(role or Role.RESEARCHER.value)
    if role == Role.ADMIN:
        # admins are provisioned by bootstrap, never through public signup
        raise RoleForbidden(
            "Admin accounts cannot be self-registered", Reason.ROLE_NOT_PERMITTED
        )
    if role == Role.NONPROFIT and not (organization_data or {}).get("name"):
        raise ValidationError(
            "organization_data is required for nonprofit role", errors=["name"]
        )
    profile_values = (
        clean_researcher_data(researcher_data or {}) if role == Role.RESEARCHER else {}
    )

    email = normalize_email(email)
    if await _email_taken(db, email):
        raise ConflictError("Email already in use")

    status = (
        AccountStatus.PENDING
        if settings.require_account_approval
        else AccountStatus.ACTIVE
    )

    async with transaction(db):
        user = await Repository(db, User).create(
            name=str(name).strip(),
            email=email,
            password_hash=hash_password(password),
            role=role.value,
            account_status=status.value,
        )
        if role == Role.NONPROFIT:
            await Repository(db, Organization).create(
                user_id=user.id,
                **{k: organization_data[k] for k in ORGANIZATION_FIELDS if k in organization_data},
            )
        elif role == Role.RESEARCHER:
            await Repository(db, ResearcherProfile).create(
                user_id=user.id, **profile_values
            )

    logger.info("Registered user %s as %s (%s)", user.id, role.value, status.value)
    return Outcome(user)


async def login(db: AsyncSession, email: str, password: str) -> tuple[User, str]:
    """Check credentials and return the user with a fresh bearer token."""
    email = normalize_email(email)
    users = Repository(db, User)
    user = await users.find_one(User.email == email)
    if user is None:
        # a soft-deleted account is reported as suspended, not unknown
        user = await users.find_one(User.email == email, include_deleted=True)

    if user is None or not verify_password(password or "", user.password_hash):
        raise AuthError("Invalid email or password", Reason.INVALID_CREDENTIALS)

    ensure_authenticatable(user)

    async with transaction(db):
        await users.update(user, last_login=datetime.now(timezone.utc))

    return user, token_for_user(user.id)


# ── self-service ──────────────────────────────────────────────────────────


async def get_self(db: AsyncSession, principal: Principal) -> User:
    return await _get_user_or_404(db, principal.id)


async def update_self(
    db: AsyncSession,
    principal: Principal,
    *,
    name: str | None = None,
    email: str | None = None,
) -> Outcome:
    user = await _get_user_or_404(db, principal.id)
    require(principal, Action.SELF_EDIT, Target(user_id=user.id))

    values = {}
    if name is not None:
        if not name.strip():
            raise ValidationError("Name cannot be empty")
        values["name"] = name.strip()
    if email is not None:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email cannot be empty")
        if email != user.email and await _email_taken(db, email, exclude_id=user.id):
            raise ConflictError("Email already in use")
        values["email"] = email

    async with transaction(db):
        await Repository(db, User).update(user, **values)
    return Outcome(user)


async def change_password(
    db: AsyncSession, principal: Principal, current_password: str, new_password: str
) -> None:
    user = await _get_user_or_404(db, principal.id)
    require(principal, Action.SELF_EDIT, Target(user_id=user.id))

    if not verify_password(current_password or "", user.password_hash):
        raise ValidationError(
            "Current password is incorrect", Reason.INVALID_CREDENTIALS
        )
    if len(new_password or "") < settings.min_password_length:
        raise ValidationError(
            f"New password must be at least {settings.min_password_length} characters"
        )

    async with transaction(db):
        await Repository(db, User).update(
            user, password_hash=hash_password(new_password)
        )
    logger.info("User %s changed password", user.id)


async def _preferences_row(db: AsyncSession, user_id: int) -> UserPreferences:
    repo = Repository(db, UserPreferences)
    prefs = await repo.find_one(UserPreferences.user_id == user_id)
    if prefs is None:
        prefs = await repo.create(user_id=user_id)
    return prefs


async def get_preferences(db: AsyncSession, principal: Principal) -> UserPreferences:
    async with transaction(db):
        prefs = await _preferences_row(db, principal.id)
    return prefs


async def update_preferences(
    db: AsyncSession, principal: Principal, changes: dict
) -> Outcome:
    require(principal, Action.SELF_EDIT, Target(user_id=principal.id))

    values = {}
    for key, value in changes.items():
        if key not in PREFERENCE_FIELDS or value is None:
            continue
        if not isinstance(value, bool):
            raise ValidationError(f"{key} must be a boolean")
        values[key] = value

    async with transaction(db):
        prefs = await _preferences_row(db, principal.id)
        previous = {field: getattr(prefs, field) for field in PREFERENCE_FIELDS}
        await Repository(db, UserPreferences).update(prefs, **values)
    return Outcome(prefs, previous)


async def delete_self(
    db: AsyncSession, principal: Principal, reason: str | None = None
) -> Outcome:
    user = await _get_user_or_404(db, principal.id)
    require(principal, Action.SELF_DELETE, Target(user_id=user.id))

    async with transaction(db):
        previous = await _apply(
            db, user, AccountEvent.DELETE_SELF, reason=reason or "Deleted by user"
        )

    logger.info("User %s deleted own account", user.id)
    return Outcome(user, previous)


# ── admin ─────────────────────────────────────────────────────────────────


async def list_users(
    db: AsyncSession,
    principal: Principal,
    *,
    role: str | None = None,
    status: str | None = None,
    search: str | None = None,
    include_deleted: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[User], int]:
    require(principal, Action.USER_READ)

    criteria = []
    if role:
        criteria.append(User.role == parse_role(role).value)
    if status:
        if status not in {s.value for s in AccountStatus}:
            raise ValidationError("Invalid status. Must be: active, pending, or suspended")
        criteria.append(User.account_status == status)
    if search:
        pattern = f"%{search}%"
        criteria.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    repo = Repository(db, User)
    total = await repo.count_where(*criteria, include_deleted=include_deleted)
    users = await repo.find_where(
        *criteria,
        order_by=[User.created_at.desc(), User.id.desc()],
        limit=limit,
        offset=(page - 1) * limit,
        include_deleted=include_deleted,
    )
    return users, total


async def list_pending_users(db: AsyncSession, principal: Principal) -> list[User]:
    require(principal, Action.USER_READ)
    return await Repository(db, User).find_where(
        User.account_status == AccountStatus.PENDING.value,
        order_by=User.created_at.asc(),
    )


async def get_user(db: AsyncSession, principal: Principal, user_id: int) -> User:
    require(principal, Action.USER_READ)
    return await _get_user_or_404(db, user_id, include_deleted=True)


async def set_user_status(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    status: str,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    require(principal, Action.USER_SET_STATUS)
    requested = parse_account_status(status)
    user = await _get_user_or_404(db, user_id)
    require(
        principal,
        Action.USER_SET_STATUS,
        replace(user_target(user), new_status=requested),
    )

    async with transaction(db):
        previous = await _apply(
            db, user, AccountEvent.SET_STATUS, status=requested.value
        )
        await emit_audit(
            db,
            sink,
            actor_id=principal.id,
            action="user.set_status",
            entity_type="user",
            entity_id=user.id,
            details={"previous": previous.as_dict(), "status": user.account_status},
        )

    logger.info("Admin %s set user %s status to %s", principal.id, user.id, status)
    return Outcome(user, previous)


async def approve_user(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    require(principal, Action.USER_APPROVE)
    user = await _get_user_or_404(db, user_id)

    async with transaction(db):
        previous = await _apply(db, user, AccountEvent.APPROVE)
        await emit_audit(
            db,
            sink,
            actor_id=principal.id,
            action="user.approve",
            entity_type="user",
            entity_id=user.id,
            details={"previous": previous.as_dict()},
        )

    logger.info("Admin %s approved user %s", principal.id, user.id)
    return Outcome(user, previous)


async def suspend_user(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    reason: str | None = None,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    require(principal, Action.USER_SUSPEND)
    # deleted rows are included so a second suspend is reported as such
    user = await _get_user_or_404(db, user_id, include_deleted=True)
    require(principal, Action.USER_SUSPEND, user_target(user))

    async with transaction(db):
        previous = await _apply(db, user, AccountEvent.SUSPEND, reason=reason)
        await emit_audit(
            db,
            sink,
            actor_id=principal.id,
            action="user.suspend",
            entity_type="user",
            entity_id=user.id,
            details={"previous": previous.as_dict(), "reason": reason},
        )

    logger.info("Admin %s suspended user %s", principal.id, user.id)
    return Outcome(user, previous)


async def _restore(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    action: Action,
    audit_action: str,
    sink: AuditSink | None,
) -> Outcome:
    require(principal, action)
    user = await _get_user_or_404(db, user_id, include_deleted=True)
    if user.deleted_at is not None and await _email_taken(
        db, user.email, exclude_id=user.id
    ):
        # another live account took the address while this one was deleted
        raise ConflictError("Email already in use by another account")

    async with transaction(db):
        previous = await _apply(db, user, AccountEvent.RESTORE)
        await emit_audit(
            db,
            sink,
            actor_id=principal.id,
            action=audit_action,
            entity_type="user",
            entity_id=user.id,
            details={"previous": previous.as_dict()},
        )

    logger.info("Admin %s restored user %s", principal.id, user.id)
    return Outcome(user, previous)


async def unsuspend_user(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    return await _restore(
        db, principal, user_id, Action.USER_UNSUSPEND, "user.unsuspend", sink
    )


async def restore_user(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    return await _restore(
        db, principal, user_id, Action.USER_RESTORE, "user.restore", sink
    )


async def hard_delete_user(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    confirmation: str | None,
    *,
    sink: AuditSink | None = None,
) -> Outcome:
    """Remove the user row and everything it owns. Irreversible."""
    require(principal, Action.USER_HARD_DELETE)
    if confirmation != settings.hard_delete_confirmation:
        raise ConfirmationRequired(
            f'Confirmation required. Send confirmation: "{settings.hard_delete_confirmation}"'
        )
    user = await _get_user_or_404(db, user_id, include_deleted=True)
    require(principal, Action.USER_HARD_DELETE, user_target(user))

    async with transaction(db):
        previous = await _apply(db, user, AccountEvent.HARD_DELETE)
        snapshot = {"email": user.email, "role": user.role}
        await delete_user_rows(db, user)
        await emit_audit(
            db,
            sink,
            actor_id=principal.id,
            action="user.hard_delete",
            entity_type="user",
            entity_id=user_id,
            details={"previous": previous.as_dict(), **snapshot},
        )

    logger.warning("Admin %s permanently deleted user %s", principal.id, user_id)
    return Outcome(None, previous)
