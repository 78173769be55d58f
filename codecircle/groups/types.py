from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time


@dataclass(frozen=True, slots=True)
class GroupSettingsSnapshot:
    group_id: int | None
    max_members: int
    daily_view_limit: int
    distribution_days: int
    send_time: time
    scheduler_active: bool
    payment_mode_active: bool

    @property
    def distribution_eligible(self) -> bool:
        return self.scheduler_active and not self.payment_mode_active

    @property
    def ineligibility_reason(self) -> str | None:
        if self.payment_mode_active:
            return "payment_mode_active"
        if not self.scheduler_active:
            return "scheduler_inactive"
        return None


@dataclass(frozen=True, slots=True)
class SettingsPatch:
    """Validated admin change; ``None`` leaves a field untouched."""

    daily_view_limit: int | None = None
    distribution_days: int | None = None
    max_members: int | None = None
    send_time: time | None = None
    scheduler_active: bool | None = None
    payment_mode_active: bool | None = None
    clear_fields: frozenset[str] = field(default_factory=frozenset)

    def changed_values(self) -> dict[str, object]:
        values: dict[str, object] = {}
        for name in (
            "daily_view_limit",
            "distribution_days",
            "max_members",
            "send_time",
            "scheduler_active",
            "payment_mode_active",
        ):
            value = getattr(self, name)
            if value is not None:
                values[name] = value
        return values


@dataclass(frozen=True, slots=True)
class GroupOverview:
    group_id: int
    name: str
    members_total: int
    settings: GroupSettingsSnapshot


@dataclass(frozen=True, slots=True)
class EngineStats:
    members_total: int
    groups_total: int
    codes_total: int
    assignments_total: int
    global_settings: GroupSettingsSnapshot
