"""
Milestone lifecycle and read-time derived state.

Every status may move to every other status. The only side effect lives on
the transition itself: entering ``completed`` stamps ``completed_at``,
leaving it clears the stamp.
"""

import math
from collections.abc import Callable, Iterable
from datetime import date, datetime, time, timezone

from collabhub.core.errors import InvalidTransition, Reason, ValidationError
from collabhub.models.enums import MilestoneStatus
from collabhub.models.milestones import Milestone

MILESTONE_TRANSITIONS: dict[MilestoneStatus, frozenset[MilestoneStatus]] = {
    status: frozenset(MilestoneStatus) for status in MilestoneStatus
}


def _stamp(milestone: Milestone, now: datetime) -> None:
    milestone.completed_at = now


def _clear(milestone: Milestone, now: datetime) -> None:
    milestone.completed_at = None


def _keep(milestone: Milestone, now: datetime) -> None:
    pass


# (was completed, will be completed) -> transition action
_ACTIONS: dict[tuple[bool, bool], Callable[[Milestone, datetime], None]] = {
    (False, True): _stamp,
    (True, False): _clear,
    (True, True): _keep,
    (False, False): _keep,
}


def parse_milestone_status(value) -> MilestoneStatus:
    try:
        return MilestoneStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in MilestoneStatus)
        raise ValidationError(f"Invalid status. Must be one of: {allowed}") from None


def transition(
    milestone: Milestone, status, *, now: datetime | None = None
) -> MilestoneStatus | None:
    """Move ``milestone`` to ``status``, applying the completed_at action.

    Returns the previous status (None for a milestone being created).
    """
    target = parse_milestone_status(status)
    previous = MilestoneStatus(milestone.status) if milestone.status else None
    if previous is not None and target not in MILESTONE_TRANSITIONS[previous]:
        raise InvalidTransition(
            f"Cannot move milestone from {previous.value} to {target.value}",
            Reason.STATUS_NOT_ALLOWED,
        )

    now = now or datetime.now(timezone.utc)
    was_completed = previous == MilestoneStatus.COMPLETED
    _ACTIONS[(was_completed, target == MilestoneStatus.COMPLETED)](milestone, now)
    milestone.status = target.value
    return previous


def clean_name(name) -> str:
    if name is None or not str(name).strip():
        raise ValidationError("Milestone name is required")
    return str(name).strip()


def validate_new_due_date(due_date: date | None, now: datetime | None = None) -> None:
    """Creation-only rule: a new milestone cannot already be due in the past."""
    if due_date is None:
        return
    today = (now or datetime.now(timezone.utc)).date()
    if due_date < today:
        raise ValidationError("Due date must be today or in the future")


def _due_datetime(due_date: date) -> datetime:
    return datetime.combine(due_date, time.min, tzinfo=timezone.utc)


def _aware(now: datetime | None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now


def is_overdue(milestone: Milestone, now: datetime | None = None) -> bool:
    if milestone.status == MilestoneStatus.COMPLETED.value or milestone.due_date is None:
        return False
    return _due_datetime(milestone.due_date) < _aware(now)


def days_until_due(milestone: Milestone, now: datetime | None = None) -> int | None:
    if milestone.due_date is None:
        return None
    delta = _due_datetime(milestone.due_date) - _aware(now)
    return math.ceil(delta.total_seconds() / 86400)


def effective_status(milestone: Milestone) -> str:
    return milestone.status


def completion_rate(milestones: Iterable[Milestone]) -> int:
    """Percentage of completed milestones, rounded half up; 0 when empty."""
    milestones = list(milestones)
    if not milestones:
        return 0
    completed = sum(1 for m in milestones if m.status == MilestoneStatus.COMPLETED.value)
    return math.floor(completed * 100 / len(milestones) + 0.5)


def milestone_stats(
    milestones: Iterable[Milestone], now: datetime | None = None
) -> dict[str, int]:
    milestones = list(milestones)
    stats = {status.value: 0 for status in MilestoneStatus}
    for m in milestones:
        stats[m.status] = stats.get(m.status, 0) + 1
    return {
        "total": len(milestones),
        **stats,
        "overdue": sum(1 for m in milestones if is_overdue(m, now)),
        "completion_rate": completion_rate(milestones),
    }
