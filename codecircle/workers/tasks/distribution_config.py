from __future__ import annotations

from codecircle.core.config import get_settings

settings = get_settings()


def _clamp_tick_seconds(value: int) -> int:
    return max(10, min(600, int(value)))


def _clamp_catchup_minutes(value: int) -> int:
    return max(1, min(180, int(value)))


DISTRIBUTION_TICK_SECONDS = _clamp_tick_seconds(settings.distribution_tick_seconds)
DISTRIBUTION_CATCHUP_MINUTES = _clamp_catchup_minutes(settings.distribution_catchup_minutes)

__all__ = [
    "DISTRIBUTION_CATCHUP_MINUTES",
    "DISTRIBUTION_TICK_SECONDS",
]
