"""
User and notification preference models.

A user is soft-deleted by stamping ``deleted_at``; the row stays in place so
an admin can restore it. Email uniqueness only applies among live rows.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from collabhub.db.base import Base, utcnow
from .enums import AccountStatus, Role


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=Role.RESEARCHER.value)
    account_status = Column(
        String(32), nullable=False, default=AccountStatus.ACTIVE.value
    )

    deleted_at = Column(DateTime(timezone=True), nullable=True)
    suspension_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    last_login = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "uq_users_live_email",
            "email",
            unique=True,
            postgresql_where=deleted_at.is_(None),
            sqlite_where=deleted_at.is_(None),
        ),
        CheckConstraint(role.in_([r.value for r in Role]), name="ck_users_role"),
        CheckConstraint(
            account_status.in_([s.value for s in AccountStatus]),
            name="ck_users_account_status",
        ),
    )


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    email_notifications = Column(Boolean, nullable=False, default=True)
    email_messages = Column(Boolean, nullable=False, default=True)
    email_matches = Column(Boolean, nullable=False, default=True)
    email_milestones = Column(Boolean, nullable=False, default=True)
    email_project_updates = Column(Boolean, nullable=False, default=True)
    inapp_notifications = Column(Boolean, nullable=False, default=True)
    inapp_messages = Column(Boolean, nullable=False, default=True)
    inapp_matches = Column(Boolean, nullable=False, default=True)
    weekly_digest = Column(Boolean, nullable=False, default=False)
    monthly_report = Column(Boolean, nullable=False, default=False)
    marketing_emails = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


PREFERENCE_FIELDS = (
    "email_notifications",
    "email_messages",
    "email_matches",
    "email_milestones",
    "email_project_updates",
    "inapp_notifications",
    "inapp_messages",
    "inapp_matches",
    "weekly_digest",
    "monthly_report",
    "marketing_emails",
)
