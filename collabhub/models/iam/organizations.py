"""
Organization, researcher profile and agreement models.

Each nonprofit user owns at most one Organization (``user_id`` is unique);
each researcher owns at most one ResearcherProfile. An Agreement links the
two once a collaboration is in place.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from collabhub.db.base import Base, utcnow


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
        index=True,
    )
    name = Column(String(255), nullable=False)
    ein = Column(String(255), nullable=True)
    mission = Column(Text, nullable=True)
    focus_tags = Column(String(255), nullable=True)
    compliance_flags = Column(String(255), nullable=True)
    contacts = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class ResearcherProfile(Base):
    __tablename__ = "researcher_profiles"

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    affiliation = Column(String(255), nullable=True)
    domains = Column(String(255), nullable=True)
    methods = Column(String(255), nullable=True)
    tools = Column(String(255), nullable=True)
    rate_min = Column(Numeric(10, 2), nullable=True)
    rate_max = Column(Numeric(10, 2), nullable=True)
    availability = Column(String(255), nullable=True)


class Agreement(Base):
    __tablename__ = "agreements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    org_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    researcher_id = Column(
        Integer,
        ForeignKey("researcher_profiles.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(255), nullable=True)
    value = Column(String(255), nullable=True)
    budget_info = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
