"""
Account lifecycle state machine.

The stored pair (``account_status``, ``deleted_at``) collapses into a single
observable ``AccountState``. Soft deletion always wins: a row with
``deleted_at`` set is DELETED whatever its status column says.

    PENDING   --approve-->        ACTIVE
    ACTIVE    --suspend/delete--> DELETED(at, reason)
    DELETED   --restore-->        state derived from account_status
    any       --hard_delete-->    (row removed)
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from collabhub.core.errors import InvalidTransition, Reason, ValidationError
from collabhub.models.iam import AccountStatus, User


class AccountStateKind(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"
    DELETED = "deleted"


@dataclass(frozen=True)
class AccountState:
    kind: AccountStateKind
    deleted_at: datetime | None = None
    reason: str | None = None

    @property
    def is_deleted(self) -> bool:
        return self.kind == AccountStateKind.DELETED

    def as_dict(self) -> dict:
        return {
            "state": self.kind.value,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "reason": self.reason,
        }


class AccountEvent(str, Enum):
    APPROVE = "approve"
    SUSPEND = "suspend"
    DELETE_SELF = "delete_self"
    RESTORE = "restore"
    SET_STATUS = "set_status"
    HARD_DELETE = "hard_delete"


_ALL = frozenset(AccountStateKind)
_LIVE = frozenset(
    {AccountStateKind.ACTIVE, AccountStateKind.PENDING, AccountStateKind.SUSPENDED}
)

# event -> states it may fire from
ACCOUNT_TRANSITIONS: dict[AccountEvent, frozenset[AccountStateKind]] = {
    AccountEvent.APPROVE: frozenset({AccountStateKind.PENDING}),
    AccountEvent.SUSPEND: _LIVE,
    AccountEvent.DELETE_SELF: _LIVE,
    AccountEvent.RESTORE: frozenset({AccountStateKind.DELETED}),
    AccountEvent.SET_STATUS: _ALL,
    AccountEvent.HARD_DELETE: _ALL,
}

_REJECTIONS: dict[AccountEvent, tuple[Reason, str]] = {
    AccountEvent.APPROVE: (Reason.NOT_PENDING, "User is not pending approval"),
    AccountEvent.SUSPEND: (Reason.ALREADY_DELETED, "User account is already suspended"),
    AccountEvent.DELETE_SELF: (Reason.ALREADY_DELETED, "Account is already deleted"),
    AccountEvent.RESTORE: (Reason.NOT_DELETED, "User account is not suspended"),
}


def account_state(user: User) -> AccountState:
    if user.deleted_at is not None:
        return AccountState(
            AccountStateKind.DELETED,
            deleted_at=user.deleted_at,
            reason=user.suspension_reason,
        )
    if user.account_status == AccountStatus.SUSPENDED.value:
        return AccountState(AccountStateKind.SUSPENDED)
    if user.account_status == AccountStatus.PENDING.value:
        return AccountState(AccountStateKind.PENDING)
    return AccountState(AccountStateKind.ACTIVE)


def can_fire(state: AccountState, event: AccountEvent) -> bool:
    return state.kind in ACCOUNT_TRANSITIONS[event]


def plan(
    user: User,
    event: AccountEvent,
    *,
    now: datetime | None = None,
    reason: str | None = None,
    status: str | None = None,
) -> tuple[AccountState, dict]:
    """Validate ``event`` against ``user`` without touching it.

    Returns the current state and the column changes the event implies.
    Raises ``InvalidTransition`` when the current state does not accept the
    event.
    """
    previous = account_state(user)
    if not can_fire(previous, event):
        code, message = _REJECTIONS.get(
            event, (Reason.STATUS_NOT_ALLOWED, "Transition not allowed")
        )
        raise InvalidTransition(message, code)

    now = now or datetime.now(timezone.utc)

    if event == AccountEvent.APPROVE:
        changes = {"account_status": AccountStatus.ACTIVE.value}
    elif event in (AccountEvent.SUSPEND, AccountEvent.DELETE_SELF):
        changes = {"deleted_at": now, "suspension_reason": reason}
    elif event == AccountEvent.RESTORE:
        changes = {"deleted_at": None, "suspension_reason": None}
    elif event == AccountEvent.SET_STATUS:
        changes = {"account_status": parse_account_status(status).value}
    else:
        # HARD_DELETE has no in-row effect; the repository removes the row
        changes = {}

    return previous, changes


def transition(user: User, event: AccountEvent, **kwargs) -> AccountState:
    """Validate and apply ``event`` to ``user`` in place.

    Returns the state the account was in before the transition and leaves
    the user untouched when the event is rejected.
    """
    previous, changes = plan(user, event, **kwargs)
    for key, value in changes.items():
        setattr(user, key, value)
    return previous


def parse_account_status(value: str | None) -> AccountStatus:
    try:
        return AccountStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in AccountStatus)
        raise ValidationError(f"Invalid status. Must be one of: {allowed}") from None
