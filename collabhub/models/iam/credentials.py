"""
Researcher credentials: academic history and professional certifications.

Both hang off the researcher's user row and are only ever read or written
by that researcher.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from collabhub.db.base import Base, utcnow


class AcademicHistory(Base):
    __tablename__ = "academic_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    degree = Column(String(255), nullable=False)
    field = Column(String(255), nullable=True)
    institution = Column(String(255), nullable=False)
    year = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class Certification(Base):
    __tablename__ = "certifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    issuer = Column(String(255), nullable=False)
    year = Column(String(50), nullable=True)
    credential_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
