"""
Authorization policy.

``authorize`` is a pure function of (principal, action, target): no I/O, no
exceptions. Ownership is always decided by comparing the target's foreign
keys against ids carried by the resolved Principal, never against ids the
client sent.

``require`` turns a Deny into the matching error kind. Ownership failures
surface as NotFound so that other organizations' rows stay invisible;
categorical role failures surface as RoleForbidden.
"""

from dataclasses import dataclass
from enum import Enum

from collabhub.core.errors import AuthError, NotFoundError, Reason, RoleForbidden
from collabhub.core.principal import Principal
from collabhub.models.enums import ProjectStatus
from collabhub.models.iam import AccountStatus, Role


class Action(str, Enum):
    PROJECT_BROWSE = "project:browse"
    PROJECT_READ = "project:read"
    PROJECT_LIST_OWN = "project:list_own"
    PROJECT_LIST_COLLABORATIONS = "project:list_collaborations"
    PROJECT_CREATE = "project:create"
    PROJECT_EDIT = "project:edit"
    PROJECT_DELETE = "project:delete"
    PROJECT_SUBMIT = "project:submit"
    PROJECT_REVIEW = "project:review"

    MILESTONE_READ = "milestone:read"
    MILESTONE_CREATE = "milestone:create"
    MILESTONE_EDIT = "milestone:edit"
    MILESTONE_DELETE = "milestone:delete"

    SELF_EDIT = "self:edit"
    SELF_DELETE = "self:delete"
    ORGANIZATION_EDIT = "organization:edit"
    RESEARCHER_PROFILE_EDIT = "researcher_profile:edit"

    USER_READ = "user:read"
    USER_APPROVE = "user:approve"
    USER_SUSPEND = "user:suspend"
    USER_UNSUSPEND = "user:unsuspend"
    USER_RESTORE = "user:restore"
    USER_SET_STATUS = "user:set_status"
    USER_HARD_DELETE = "user:hard_delete"

    ORGANIZATION_DELETE = "organization:delete"
    ADMIN_BROWSE = "admin:browse"
    ADMIN_DASHBOARD = "admin:dashboard"


@dataclass(frozen=True)
class Target:
    """What the policy needs to know about the entity being acted on."""

    org_id: int | None = None
    project_status: ProjectStatus | None = None
    user_id: int | None = None
    user_role: Role | None = None
    # requested account_status, for status edits
    new_status: AccountStatus | None = None


NO_TARGET = Target()


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Reason | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: Reason) -> Decision:
    return Decision(False, reason)


_OWNED_WORK_ACTIONS = frozenset(
    {
        Action.PROJECT_EDIT,
        Action.PROJECT_DELETE,
        Action.PROJECT_SUBMIT,
        Action.MILESTONE_CREATE,
        Action.MILESTONE_EDIT,
        Action.MILESTONE_DELETE,
    }
)

_ADMIN_ONLY_ACTIONS = frozenset(
    {
        Action.PROJECT_REVIEW,
        Action.USER_READ,
        Action.USER_APPROVE,
        Action.USER_UNSUSPEND,
        Action.USER_RESTORE,
        Action.ORGANIZATION_DELETE,
        Action.ADMIN_BROWSE,
        Action.ADMIN_DASHBOARD,
    }
)

_SELF_SERVICE_ACTIONS = frozenset({Action.SELF_EDIT, Action.SELF_DELETE})


def _owns(principal: Principal, target: Target) -> bool:
    return principal.org_id is not None and principal.org_id == target.org_id


def _project_visible(principal: Principal | None, target: Target) -> bool:
    if target.project_status == ProjectStatus.OPEN:
        return True
    if principal is None:
        return False
    return principal.is_admin or _owns(principal, target)


def authorize(
    principal: Principal | None, action: Action, target: Target = NO_TARGET
) -> Decision:
    if action == Action.PROJECT_BROWSE:
        return ALLOW

    if action in (Action.PROJECT_READ, Action.MILESTONE_READ):
        if _project_visible(principal, target):
            return ALLOW
        return deny(Reason.NOT_VISIBLE)

    if principal is None:
        return deny(Reason.UNAUTHENTICATED)

    if action in _SELF_SERVICE_ACTIONS:
        if target.user_id is not None and target.user_id != principal.id:
            return deny(Reason.NOT_OWNER)
        if action == Action.SELF_DELETE and principal.is_admin:
            return deny(Reason.ADMIN_EXEMPT)
        return ALLOW

    if action == Action.ORGANIZATION_EDIT:
        if principal.role != Role.NONPROFIT:
            return deny(Reason.ROLE_NOT_PERMITTED)
        return ALLOW

    if action in (Action.RESEARCHER_PROFILE_EDIT, Action.PROJECT_LIST_COLLABORATIONS):
        if principal.role != Role.RESEARCHER:
            return deny(Reason.ROLE_NOT_PERMITTED)
        return ALLOW

    if action in (Action.PROJECT_CREATE, Action.PROJECT_LIST_OWN):
        if principal.is_admin:
            return ALLOW
        if principal.role != Role.NONPROFIT:
            return deny(Reason.ROLE_NOT_PERMITTED)
        if target.org_id is not None and not _owns(principal, target):
            return deny(Reason.NOT_OWNER)
        return ALLOW

    if action in _OWNED_WORK_ACTIONS:
        if principal.is_admin:
            return ALLOW
        if principal.role != Role.NONPROFIT:
            return deny(Reason.ROLE_NOT_PERMITTED)
        if not _owns(principal, target):
            return deny(Reason.NOT_OWNER)
        return ALLOW

    if action == Action.USER_SUSPEND:
        if not principal.is_admin:
            return deny(Reason.ROLE_NOT_PERMITTED)
        if target.user_role == Role.ADMIN:
            return deny(Reason.ADMIN_EXEMPT)
        return ALLOW

    if action == Action.USER_SET_STATUS:
        if not principal.is_admin:
            return deny(Reason.ROLE_NOT_PERMITTED)
        if target.user_role == Role.ADMIN and target.new_status not in (
            None,
            AccountStatus.ACTIVE,
        ):
            return deny(Reason.ADMIN_EXEMPT)
        return ALLOW

    if action == Action.USER_HARD_DELETE:
        if not principal.is_admin:
            return deny(Reason.ROLE_NOT_PERMITTED)
        if target.user_id == principal.id:
            return deny(Reason.SELF_DELETE_FORBIDDEN)
        return ALLOW

    if action in _ADMIN_ONLY_ACTIONS:
        if principal.is_admin:
            return ALLOW
        return deny(Reason.ROLE_NOT_PERMITTED)

    return deny(Reason.ROLE_NOT_PERMITTED)


_DENY_MESSAGES = {
    Reason.NOT_OWNER: "Resource not found",
    Reason.NOT_VISIBLE: "Resource not found",
    Reason.ROLE_NOT_PERMITTED: "Your role cannot perform this action",
    Reason.SELF_DELETE_FORBIDDEN: "Cannot delete your own admin account",
    Reason.ADMIN_EXEMPT: "Admin accounts cannot be suspended or deleted",
    Reason.UNAUTHENTICATED: "Authentication required",
}


def require(
    principal: Principal | None,
    action: Action,
    target: Target = NO_TARGET,
    *,
    not_found_message: str | None = None,
) -> None:
    """Raise the error matching a Deny; return quietly on Allow."""
    decision = authorize(principal, action, target)
    if decision.allowed:
        return
    reason = decision.reason
    message = _DENY_MESSAGES.get(reason, "Access forbidden")
    if reason in (Reason.NOT_OWNER, Reason.NOT_VISIBLE):
        raise NotFoundError(not_found_message or message, reason)
    if reason == Reason.UNAUTHENTICATED:
        raise AuthError(message, reason)
    raise RoleForbidden(message, reason)
