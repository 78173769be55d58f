from __future__ import annotations

from datetime import date, datetime, time

from pydantic import BaseModel, Field, field_validator

from codecircle.core.time import parse_send_time

OVERRIDE_FIELD_NAMES = (
    "daily_view_limit",
    "distribution_days",
    "send_time",
    "scheduler_active",
    "payment_mode_active",
)


class SettingsUpdateRequest(BaseModel):
    daily_view_limit: int | None = Field(default=None, ge=1, le=10000)
    distribution_days: int | None = Field(default=None, ge=1, le=365)
    max_members: int | None = Field(default=None, ge=2, le=100000)
    send_time: time | None = None
    scheduler_active: bool | None = None
    payment_mode_active: bool | None = None

    @field_validator("send_time", mode="before")
    @classmethod
    def _parse_send_time(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return parse_send_time(value)
            except ValueError as exc:
                raise ValueError("send_time must be HH:MM") from exc
        return value


class GroupSettingsUpdateRequest(SettingsUpdateRequest):
    clear_fields: list[str] = Field(default_factory=list, max_length=len(OVERRIDE_FIELD_NAMES))


class SettingsResponse(BaseModel):
    group_id: int | None
    max_members: int
    daily_view_limit: int
    distribution_days: int
    send_time: str
    scheduler_active: bool
    payment_mode_active: bool
    distribution_eligible: bool


class GroupOverviewResponse(BaseModel):
    group_id: int
    name: str
    members_total: int = Field(ge=0)
    settings: SettingsResponse


class StatsResponse(BaseModel):
    generated_at: datetime
    members_total: int = Field(ge=0)
    groups_total: int = Field(ge=0)
    codes_total: int = Field(ge=0)
    assignments_total: int = Field(ge=0)
    global_settings: SettingsResponse
    groups: list[GroupOverviewResponse]


class DistributionRunResponse(BaseModel):
    group_id: int
    local_date: date
    outcome: str
    next_day: int | None = None
    codes_total: int = Field(ge=0)
    codes_distributed: int = Field(ge=0)
    codes_failed: int = Field(ge=0)
    assignments_created: int = Field(ge=0)
    viewers_notified: int = Field(ge=0)
    reason: str | None = None


class CycleResetResponse(BaseModel):
    assignments_deleted: int = Field(ge=0)
    codes_deleted: int = Field(ge=0)
