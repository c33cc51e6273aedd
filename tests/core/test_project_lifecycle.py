from decimal import Decimal

import pytest

from collabhub.core.errors import InvalidTransition, Reason, ValidationError
from collabhub.core.lifecycle.project import (
    ProjectEvent,
    clean_budget,
    clean_title,
    transition,
)
from collabhub.models import Project, ProjectStatus, ReviewAction


def _project(status="draft", title="Literacy study") -> Project:
    return Project(org_id=1, title=title, status=status)


@pytest.mark.parametrize("status", ["draft", "needs_revision"])
def test_submit_moves_to_pending_review(status):
    project = _project(status)
    result = transition(project, ProjectEvent.SUBMIT)
    assert result.previous == ProjectStatus(status)
    assert result.new == ProjectStatus.PENDING_REVIEW
    assert result.review_action == ReviewAction.SUBMITTED
    assert project.status == "pending_review"


@pytest.mark.parametrize("status", ["pending_review", "approved", "open", "rejected"])
def test_submit_rejected_from_other_states(status):
    project = _project(status)
    with pytest.raises(InvalidTransition) as exc:
        transition(project, ProjectEvent.SUBMIT)
    assert exc.value.reason == Reason.STATUS_NOT_ALLOWED
    assert project.status == status


def test_submit_requires_title():
    project = _project(title="   ")
    with pytest.raises(ValidationError):
        transition(project, ProjectEvent.SUBMIT)
    assert project.status == "draft"


@pytest.mark.parametrize(
    "event, target, action",
    [
        (ProjectEvent.APPROVE, ProjectStatus.APPROVED, ReviewAction.APPROVED),
        (ProjectEvent.REJECT, ProjectStatus.REJECTED, ReviewAction.REJECTED),
        (
            ProjectEvent.REQUEST_CHANGES,
            ProjectStatus.NEEDS_REVISION,
            ReviewAction.NEEDS_REVISION,
        ),
    ],
)
def test_review_outcomes_from_pending_review(event, target, action):
    project = _project("pending_review")
    result = transition(project, event)
    assert result.new == target
    assert result.review_action == action
    assert project.status == target.value


@pytest.mark.parametrize(
    "event", [ProjectEvent.APPROVE, ProjectEvent.REJECT, ProjectEvent.REQUEST_CHANGES]
)
def test_review_outcomes_need_pending_review(event):
    with pytest.raises(InvalidTransition):
        transition(_project("draft"), event)


def test_set_status_accepts_any_declared_status():
    project = _project("draft")
    result = transition(project, ProjectEvent.SET_STATUS, status="completed")
    assert result.previous == ProjectStatus.DRAFT
    assert result.review_action is None
    assert project.status == "completed"


def test_set_status_rejects_unknown_status():
    project = _project("draft")
    with pytest.raises(ValidationError):
        transition(project, ProjectEvent.SET_STATUS, status="archived")
    assert project.status == "draft"


def test_clean_title():
    assert clean_title("  Survey  ") == "Survey"
    with pytest.raises(ValidationError):
        clean_title("")
    with pytest.raises(ValidationError):
        clean_title(None)


@pytest.mark.parametrize(
    "value, expected",
    [(None, None), ("", None), (0, Decimal("0")), (100, Decimal("100")), ("12.50", Decimal("12.50"))],
)
def test_clean_budget_accepts(value, expected):
    assert clean_budget(value) == expected


@pytest.mark.parametrize("value", [-1, "abc", "NaN", "Infinity"])
def test_clean_budget_rejects(value):
    with pytest.raises(ValidationError):
        clean_budget(value)
