"""Shared pydantic models and enums for Fauke."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class ProviderKey(str, Enum):
    FORTNOX = "fortnox"
    VISMA = "visma"
    PE_ACCOUNTING = "pe_accounting"


class SyncStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class UserIntegration(BaseModel):
    """Links a local user to their identifier inside the external system."""

    user_id: str
    external_id: str | None = None
    assigned_at: dt.datetime


class IntegrationCreateRequest(BaseModel):
    provider: str
    name: str = Field(min_length=1)
    config: dict[str, Any]
    enabled: bool = True


class IntegrationUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    config: dict[str, Any] | None = None
    enabled: bool | None = None


class Integration(IntegrationCreateRequest):
    integration_id: str
    users: list[UserIntegration] = Field(default_factory=list)
    created_at: dt.datetime
    updated_at: dt.datetime

    def assignment_for(self, user_id: str) -> UserIntegration | None:
        for assignment in self.users:
            if assignment.user_id == user_id:
                return assignment
        return None


class UserAssignRequest(BaseModel):
    user_id: str = Field(min_length=1)
    external_id: str | None = None


class SyncRequest(BaseModel):
    user_id: str = Field(min_length=1)
    date_from: dt.date
    date_to: dt.date

    @model_validator(mode="after")
    def _check_range(self) -> "SyncRequest":
        if self.date_to < self.date_from:
            raise ValueError("date_to must not be before date_from")
        return self


class SyncLog(BaseModel):
    """One append-only audit row per connection test or sync attempt."""

    log_id: str
    integration_id: str
    user_id: str | None = None
    status: SyncStatus
    message: str | None = None
    entries_synced: int = 0
    created_at: dt.datetime


class ProjectCreateRequest(BaseModel):
    name: str = Field(min_length=1)


class Project(ProjectCreateRequest):
    project_id: str
    created_at: dt.datetime


class TimeEntryCreateRequest(BaseModel):
    user_id: str = Field(min_length=1)
    project_id: str
    date: dt.date
    hours: float = Field(ge=0, le=24)
    note: str | None = None


class TimeEntry(TimeEntryCreateRequest):
    entry_id: str
    created_at: dt.datetime
