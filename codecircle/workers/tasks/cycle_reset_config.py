from __future__ import annotations

from codecircle.core.config import get_settings

settings = get_settings()

CYCLE_RESET_JOB_NAME = "cycle_reset_monthly"


def _clamp_day_of_month(value: int) -> int:
    return max(1, min(28, int(value)))


def _clamp_hour(value: int) -> int:
    return max(0, min(23, int(value)))


def _clamp_minute(value: int) -> int:
    return max(0, min(59, int(value)))


CYCLE_RESET_DAY_OF_MONTH = _clamp_day_of_month(settings.cycle_reset_day_of_month)
CYCLE_RESET_HOUR_LOCAL = _clamp_hour(settings.cycle_reset_hour_local)
CYCLE_RESET_MINUTE_LOCAL = _clamp_minute(settings.cycle_reset_minute_local)

__all__ = [
    "CYCLE_RESET_DAY_OF_MONTH",
    "CYCLE_RESET_HOUR_LOCAL",
    "CYCLE_RESET_JOB_NAME",
    "CYCLE_RESET_MINUTE_LOCAL",
]
