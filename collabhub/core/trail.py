"""
Audit and review trail.

Both trails are append-only: rows are added in the same transaction as the
transition they describe and are never updated afterwards.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.core.lifecycle.project import ProjectTransitionResult
from collabhub.models.audit import AuditLog
from collabhub.models.projects import ProjectReview

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEvent:
    actor_id: int | None
    action: str
    entity_type: str
    entity_id: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    details: dict[str, Any] | None = None


@runtime_checkable
class AuditSink(Protocol):
    """Receives every admin-triggered lifecycle transition."""

    async def emit(self, event: AuditEvent) -> None:
        ...


class SqlAuditSink:
    """Default sink: appends an ``audit_logs`` row to the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def emit(self, event: AuditEvent) -> None:
        self.db.add(
            AuditLog(
                actor_id=event.actor_id,
                action=event.action,
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                details=event.details,
                timestamp=event.timestamp,
            )
        )
        await self.db.flush()
        logger.info(
            "audit: actor=%s %s %s:%s",
            event.actor_id,
            event.action,
            event.entity_type,
            event.entity_id,
        )


async def append_review(
    db: AsyncSession,
    project_id: int,
    result: ProjectTransitionResult,
    *,
    reviewer_id: int | None = None,
    feedback: str | None = None,
    changes_requested: str | None = None,
    at: datetime | None = None,
) -> ProjectReview:
    review = ProjectReview(
        project_id=project_id,
        reviewer_id=reviewer_id,
        action=result.review_action.value,
        previous_status=result.previous.value,
        new_status=result.new.value,
        feedback=feedback,
        changes_requested=changes_requested,
        reviewed_at=at or datetime.now(timezone.utc),
    )
    db.add(review)
    await db.flush()
    return review
