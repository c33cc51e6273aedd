"""
Project lifecycle state machine.

Review workflow transitions are guarded by a fixed table. The generic status
edit (``SET_STATUS``) is deliberately permissive: owners and admins may move a
project to any declared status, including the reviewer outcomes.
"""

from dataclasses import dataclass
from enum import Enum
from decimal import Decimal, InvalidOperation

from collabhub.core.errors import InvalidTransition, Reason, ValidationError
from collabhub.models.enums import ProjectStatus, ReviewAction
from collabhub.models.projects import Project


class ProjectEvent(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_CHANGES = "request_changes"
    SET_STATUS = "set_status"


@dataclass(frozen=True)
class ProjectTransition:
    sources: frozenset[ProjectStatus]
    # None means the caller supplies the target
    target: ProjectStatus | None
    review_action: ReviewAction | None


PROJECT_TRANSITIONS: dict[ProjectEvent, ProjectTransition] = {
    ProjectEvent.SUBMIT: ProjectTransition(
        frozenset({ProjectStatus.DRAFT, ProjectStatus.NEEDS_REVISION}),
        ProjectStatus.PENDING_REVIEW,
        ReviewAction.SUBMITTED,
    ),
    ProjectEvent.APPROVE: ProjectTransition(
        frozenset({ProjectStatus.PENDING_REVIEW}),
        ProjectStatus.APPROVED,
        ReviewAction.APPROVED,
    ),
    ProjectEvent.REJECT: ProjectTransition(
        frozenset({ProjectStatus.PENDING_REVIEW}),
        ProjectStatus.REJECTED,
        ReviewAction.REJECTED,
    ),
    ProjectEvent.REQUEST_CHANGES: ProjectTransition(
        frozenset({ProjectStatus.PENDING_REVIEW}),
        ProjectStatus.NEEDS_REVISION,
        ReviewAction.NEEDS_REVISION,
    ),
    ProjectEvent.SET_STATUS: ProjectTransition(frozenset(ProjectStatus), None, None),
}

_VERBS = {
    ProjectEvent.SUBMIT: "submit",
    ProjectEvent.APPROVE: "approve",
    ProjectEvent.REJECT: "reject",
    ProjectEvent.REQUEST_CHANGES: "request changes for",
}


@dataclass(frozen=True)
class ProjectTransitionResult:
    previous: ProjectStatus
    new: ProjectStatus
    review_action: ReviewAction | None


def parse_project_status(value) -> ProjectStatus:
    try:
        return ProjectStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ProjectStatus)
        raise ValidationError(f"Status must be one of: {allowed}") from None


def transition(
    project: Project, event: ProjectEvent, *, status: str | None = None
) -> ProjectTransitionResult:
    """Validate and apply ``event``; the project is untouched on failure."""
    previous = parse_project_status(project.status)
    rule = PROJECT_TRANSITIONS[event]

    if previous not in rule.sources:
        allowed = " or ".join(sorted(s.value for s in rule.sources))
        raise InvalidTransition(
            f'Cannot {_VERBS.get(event, "update")} project with status '
            f'"{previous.value}". Project must be in {allowed} status.',
            Reason.STATUS_NOT_ALLOWED,
        )

    if event == ProjectEvent.SUBMIT and not (project.title or "").strip():
        raise ValidationError("Project title is required before submission")

    target = rule.target or parse_project_status(status)
    project.status = target.value
    return ProjectTransitionResult(previous, target, rule.review_action)


def clean_title(title) -> str:
    if title is None or not str(title).strip():
        raise ValidationError("Project title is required")
    return str(title).strip()


def clean_budget(value) -> Decimal | None:
    """Budgets are optional, numeric and never negative."""
    if value is None or value == "":
        return None
    try:
        budget = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Budget must be a non-negative number") from None
    if not budget.is_finite() or budget < 0:
        raise ValidationError("Budget must be a non-negative number")
    return budget
