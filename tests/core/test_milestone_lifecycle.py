from datetime import date, datetime, timezone

import pytest

from collabhub.core.errors import ValidationError
from collabhub.core.lifecycle.milestone import (
    completion_rate,
    days_until_due,
    is_overdue,
    milestone_stats,
    transition,
    validate_new_due_date,
)
from collabhub.models import Milestone, MilestoneStatus

NOW = datetime(2024, 6, 10, 9, 30, tzinfo=timezone.utc)


def _milestone(status="pending", due_date=None, completed_at=None) -> Milestone:
    return Milestone(
        project_id=1,
        name="Interviews",
        status=status,
        due_date=due_date,
        completed_at=completed_at,
    )


def test_new_milestone_has_no_previous_status():
    milestone = Milestone(project_id=1, name="Kickoff")
    assert transition(milestone, "pending", now=NOW) is None
    assert milestone.status == "pending"
    assert milestone.completed_at is None


def test_entering_completed_stamps_time():
    milestone = _milestone("in_progress")
    previous = transition(milestone, "completed", now=NOW)
    assert previous == MilestoneStatus.IN_PROGRESS
    assert milestone.completed_at == NOW


def test_leaving_completed_clears_stamp():
    milestone = _milestone("completed", completed_at=NOW)
    transition(milestone, "in_progress", now=NOW)
    assert milestone.completed_at is None


def test_completed_to_completed_keeps_original_stamp():
    earlier = datetime(2024, 5, 1, tzinfo=timezone.utc)
    milestone = _milestone("completed", completed_at=earlier)
    transition(milestone, "completed", now=NOW)
    assert milestone.completed_at == earlier


def test_unknown_status_leaves_milestone_untouched():
    milestone = _milestone("pending")
    with pytest.raises(ValidationError):
        transition(milestone, "done", now=NOW)
    assert milestone.status == "pending"


def test_due_date_in_the_past_rejected_on_create():
    with pytest.raises(ValidationError):
        validate_new_due_date(date(2024, 6, 9), NOW)
    validate_new_due_date(date(2024, 6, 10), NOW)
    validate_new_due_date(None, NOW)


def test_overdue_ignores_completed_and_undated():
    past = date(2024, 6, 1)
    assert is_overdue(_milestone("pending", past), NOW)
    assert is_overdue(_milestone("cancelled", past), NOW)
    assert not is_overdue(_milestone("completed", past, NOW), NOW)
    assert not is_overdue(_milestone("pending", None), NOW)
    assert not is_overdue(_milestone("pending", date(2024, 6, 11)), NOW)


def test_days_until_due_rounds_up():
    assert days_until_due(_milestone(due_date=date(2024, 6, 11)), NOW) == 1
    assert days_until_due(_milestone(due_date=date(2024, 6, 10)), NOW) == 0
    assert days_until_due(_milestone(due_date=date(2024, 6, 8)), NOW) == -2
    assert days_until_due(_milestone(), NOW) is None


def test_naive_now_treated_as_utc():
    naive = NOW.replace(tzinfo=None)
    assert is_overdue(_milestone(due_date=date(2024, 6, 1)), naive)


def test_completion_rate():
    assert completion_rate([]) == 0
    assert completion_rate([_milestone("completed")]) == 100
    assert completion_rate([_milestone("pending")]) == 0
    three = [_milestone("completed"), _milestone("pending"), _milestone("pending")]
    assert completion_rate(three) == 33
    assert completion_rate([_milestone("completed"), *three[:1], *three[1:]]) == 50
    two_of_three = [_milestone("completed"), _milestone("completed"), _milestone("pending")]
    assert completion_rate(two_of_three) == 67


def test_milestone_stats_counts():
    items = [
        _milestone("completed", date(2024, 6, 1), NOW),
        _milestone("pending", date(2024, 6, 1)),
        _milestone("in_progress", date(2024, 7, 1)),
        _milestone("cancelled"),
    ]
    stats = milestone_stats(items, NOW)
    assert stats == {
        "total": 4,
        "pending": 1,
        "in_progress": 1,
        "completed": 1,
        "cancelled": 1,
        "overdue": 1,
        "completion_rate": 25,
    }


def test_milestone_stats_empty():
    stats = milestone_stats([], NOW)
    assert stats["total"] == 0
    assert stats["completion_rate"] == 0
    assert stats["overdue"] == 0
