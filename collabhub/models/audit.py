"""
Append-only audit log written for admin-triggered lifecycle transitions.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String
from collabhub.db.base import Base, utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    action = Column(String(64), nullable=False)
    entity_type = Column(String(64), nullable=False)
    # not a foreign key: the entity may since have been hard-deleted
    entity_id = Column(Integer, nullable=False, index=True)
    details = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
