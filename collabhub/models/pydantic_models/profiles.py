"""
Response models for organizations, researcher profiles and credentials, and
the audit log.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class OrganizationModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int | None = None
    name: str
    ein: str | None = None
    mission: str | None = None
    focus_tags: str | None = None
    compliance_flags: str | None = None
    contacts: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrganizationListResponse(BaseModel):
    organizations: list[OrganizationModel]
    total_count: int
    page: int
    limit: int


class ResearcherProfileModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    affiliation: str | None = None
    domains: str | None = None
    methods: str | None = None
    tools: str | None = None
    rate_min: float | None = None
    rate_max: float | None = None
    availability: str | None = None

    @field_validator("rate_min", "rate_max", mode="before")
    @classmethod
    def decimal_to_float(cls, value):
        return float(value) if isinstance(value, Decimal) else value


class AcademicHistoryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    degree: str
    field: str | None = None
    institution: str
    year: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CertificationModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: str
    issuer: str
    year: str | None = None
    credential_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuditLogModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    actor_id: int | None = None
    action: str
    entity_type: str
    entity_id: int
    details: dict[str, Any] | None = None
    timestamp: datetime | None = None


class AuditLogListResponse(BaseModel):
    logs: list[AuditLogModel]
    total_count: int
    page: int
    limit: int
