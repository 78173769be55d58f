from __future__ import annotations

from celery.schedules import crontab

from codecircle.workers.tasks.cycle_reset_config import (
    CYCLE_RESET_DAY_OF_MONTH,
    CYCLE_RESET_HOUR_LOCAL,
    CYCLE_RESET_MINUTE_LOCAL,
)


def configure_cycle_reset_schedule(celery_app) -> None:
    celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
    celery_app.conf.beat_schedule.update(
        {
            "cycle-reset-monthly": {
                "task": "codecircle.workers.tasks.cycle_reset.run_cycle_reset",
                "schedule": crontab(
                    day_of_month=CYCLE_RESET_DAY_OF_MONTH,
                    hour=CYCLE_RESET_HOUR_LOCAL,
                    minute=CYCLE_RESET_MINUTE_LOCAL,
                ),
                "options": {"queue": "q_normal"},
            },
        }
    )
