from __future__ import annotations

from datetime import time

from codecircle.core.time import minutes_since
from codecircle.groups.types import GroupSettingsSnapshot


def is_send_due(send_time: time, current: time, *, catchup_minutes: int) -> bool:
    """True inside ``[send_time, send_time + catchup_minutes)`` on the local clock."""
    elapsed = minutes_since(send_time, current)
    return 0 <= elapsed < max(1, int(catchup_minutes))


def groups_due_now(
    snapshots: list[GroupSettingsSnapshot],
    *,
    current: time,
    catchup_minutes: int,
) -> list[int]:
    due: list[int] = []
    for snapshot in snapshots:
        if snapshot.group_id is None or not snapshot.distribution_eligible:
            continue
        if is_send_due(snapshot.send_time, current, catchup_minutes=catchup_minutes):
            due.append(snapshot.group_id)
    return due
