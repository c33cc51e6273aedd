"""
Response models for users and their preferences.

``password_hash`` is never part of any response model.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, computed_field


class UserModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str
    account_status: str
    deleted_at: datetime | None = None
    suspension_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_login: datetime | None = None

    @computed_field
    @property
    def state(self) -> str:
        """Observable account state: soft deletion wins over the status column."""
        return "deleted" if self.deleted_at is not None else self.account_status


class PreferencesModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    email_notifications: bool
    email_messages: bool
    email_matches: bool
    email_milestones: bool
    email_project_updates: bool
    inapp_notifications: bool
    inapp_messages: bool
    inapp_matches: bool
    weekly_digest: bool
    monthly_report: bool
    marketing_emails: bool


class AccountStateModel(BaseModel):
    state: str
    deleted_at: str | None = None
    reason: str | None = None


class UserTransitionResponse(BaseModel):
    user: UserModel | None = None
    previous_state: AccountStateModel
    message: str


class UserListResponse(BaseModel):
    users: list[UserModel]
    total_count: int
    page: int
    limit: int


class AuthResponse(BaseModel):
    access_token: str | None = None
    token_type: str = "bearer"
    user: UserModel
