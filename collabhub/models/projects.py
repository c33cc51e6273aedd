"""
Project briefs and their review trail.

``project_reviews`` is append-only: one row per review-workflow transition
(submission, approval, rejection, change request).
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from collabhub.db.base import Base, utcnow
from .enums import ProjectStatus, ReviewAction


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    org_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    problem = Column(Text, nullable=True)
    outcomes = Column(Text, nullable=True)
    methods_required = Column(String(255), nullable=True)
    timeline = Column(String(255), nullable=True)
    budget_min = Column(Numeric(10, 2), nullable=True)
    data_sensitivity = Column(String(255), nullable=True)
    status = Column(
        String(32), nullable=False, default=ProjectStatus.DRAFT.value, index=True
    )

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            status.in_([s.value for s in ProjectStatus]), name="ck_projects_status"
        ),
        CheckConstraint("budget_min IS NULL OR budget_min >= 0", name="ck_projects_budget"),
    )


class ProjectReview(Base):
    __tablename__ = "project_reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # null when the owner submits; set to the admin for review decisions
    reviewer_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    action = Column(String(32), nullable=False)
    previous_status = Column(String(32), nullable=True)
    new_status = Column(String(32), nullable=False)
    feedback = Column(Text, nullable=True)
    changes_requested = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            action.in_([a.value for a in ReviewAction]),
            name="ck_project_reviews_action",
        ),
    )
