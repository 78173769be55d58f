from __future__ import annotations

from codecircle.workers.tasks.distribution_config import DISTRIBUTION_TICK_SECONDS


def configure_distribution_schedule(celery_app) -> None:
    celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
    celery_app.conf.beat_schedule.update(
        {
            "distribution-scheduler-tick": {
                "task": "codecircle.workers.tasks.distribution.run_distribution_tick",
                "schedule": float(DISTRIBUTION_TICK_SECONDS),
                "options": {"queue": "q_normal"},
            },
        }
    )
