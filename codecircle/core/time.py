from __future__ import annotations

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from codecircle.core.config import get_settings


def schedule_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().schedule_timezone)


def local_now(now_utc: datetime) -> datetime:
    """Converts a UTC instant to the wall clock the groups are scheduled in."""
    return now_utc.astimezone(schedule_zone())


def local_date(now_utc: datetime) -> date:
    return local_now(now_utc).date()


def parse_send_time(raw: str | time) -> time:
    """Accepts ``HH:MM`` or ``HH:MM:SS`` (the stored format of the admin settings)."""
    if isinstance(raw, time):
        return raw.replace(second=0, microsecond=0, tzinfo=None)
    parts = raw.strip().split(":")
    if len(parts) not in {2, 3}:
        raise ValueError(f"invalid send time: {raw!r}")
    hour, minute = int(parts[0]), int(parts[1])
    return time(hour=hour, minute=minute)


def minutes_since(slot: time, current: time) -> int:
    return (current.hour * 60 + current.minute) - (slot.hour * 60 + slot.minute)
