from __future__ import annotations

from datetime import time
from typing import Protocol

from codecircle.core.time import parse_send_time
from codecircle.groups.types import GroupSettingsSnapshot

OVERRIDABLE_FIELDS = frozenset(
    {
        "daily_view_limit",
        "distribution_days",
        "send_time",
        "scheduler_active",
        "payment_mode_active",
    }
)


class _GlobalRow(Protocol):
    daily_view_limit: int
    distribution_days: int
    group_size: int
    send_time: time
    scheduler_active: bool
    payment_mode_active: bool


class _GroupRow(Protocol):
    id: int
    max_members: int
    daily_view_limit: int | None
    distribution_days: int | None
    send_time: time | None
    scheduler_active: bool | None
    payment_mode_active: bool | None


class _Defaults(Protocol):
    default_daily_view_limit: int
    default_distribution_days: int
    default_group_size: int
    default_send_time: str
    default_scheduler_active: bool


def fallback_snapshot(defaults: _Defaults) -> GroupSettingsSnapshot:
    return GroupSettingsSnapshot(
        group_id=None,
        max_members=max(1, int(defaults.default_group_size)),
        daily_view_limit=max(0, int(defaults.default_daily_view_limit)),
        distribution_days=max(1, int(defaults.default_distribution_days)),
        send_time=parse_send_time(defaults.default_send_time),
        scheduler_active=bool(defaults.default_scheduler_active),
        payment_mode_active=False,
    )


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


def resolve_group_settings(
    *,
    group: _GroupRow | None,
    global_row: _GlobalRow | None,
    defaults: _Defaults,
) -> GroupSettingsSnapshot:
    """Group override, then the global row, then configured defaults."""
    base = fallback_snapshot(defaults)
    if global_row is not None:
        base = GroupSettingsSnapshot(
            group_id=None,
            max_members=global_row.group_size,
            daily_view_limit=global_row.daily_view_limit,
            distribution_days=global_row.distribution_days,
            send_time=parse_send_time(global_row.send_time),
            scheduler_active=global_row.scheduler_active,
            payment_mode_active=global_row.payment_mode_active,
        )
    if group is None:
        return base

    send_time = group.send_time
    return GroupSettingsSnapshot(
        group_id=group.id,
        max_members=group.max_members,
        daily_view_limit=_first_set(group.daily_view_limit, base.daily_view_limit),
        distribution_days=_first_set(group.distribution_days, base.distribution_days),
        send_time=parse_send_time(send_time) if send_time is not None else base.send_time,
        scheduler_active=_first_set(group.scheduler_active, base.scheduler_active),
        payment_mode_active=_first_set(group.payment_mode_active, base.payment_mode_active),
    )


def next_display_name(members_total: int, *, prefix: str = "User") -> str:
    return f"{prefix}{max(0, int(members_total)) + 1}"
