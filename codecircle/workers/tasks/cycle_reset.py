from __future__ import annotations

from codecircle.workers.asyncio_runner import run_async_job
from codecircle.workers.celery_app import celery_app
from codecircle.workers.tasks.cycle_reset_async import run_cycle_reset_async as _run_cycle_reset_async
from codecircle.workers.tasks.cycle_reset_schedule import configure_cycle_reset_schedule

run_cycle_reset_async = _run_cycle_reset_async

__all__ = [
    "run_cycle_reset",
    "run_cycle_reset_async",
]


@celery_app.task(name="codecircle.workers.tasks.cycle_reset.run_cycle_reset")
def run_cycle_reset() -> dict[str, object]:
    return run_async_job(run_cycle_reset_async())


configure_cycle_reset_schedule(celery_app)
