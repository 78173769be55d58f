from __future__ import annotations

from celery.schedules import crontab

from codecircle.core.config import get_settings


def _clamp_hour(value: int) -> int:
    return max(0, min(23, int(value)))


def _clamp_minute(value: int) -> int:
    return max(0, min(59, int(value)))


def configure_penalties_schedule(celery_app) -> None:
    settings = get_settings()
    celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
    celery_app.conf.beat_schedule.update(
        {
            "penalty-daily-checkpoint": {
                "task": "codecircle.workers.tasks.penalties.run_penalty_checkpoint",
                "schedule": crontab(
                    hour=_clamp_hour(settings.penalty_checkpoint_hour_local),
                    minute=_clamp_minute(settings.penalty_checkpoint_minute_local),
                ),
                "options": {"queue": "q_normal"},
            },
        }
    )
