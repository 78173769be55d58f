from __future__ import annotations

from codecircle.workers.asyncio_runner import run_async_job
from codecircle.workers.celery_app import celery_app
from codecircle.workers.tasks.distribution_async import (
    run_distribution_tick_async as _run_distribution_tick_async,
    run_group_distribution_async as _run_group_distribution_async,
)
from codecircle.workers.tasks.distribution_schedule import configure_distribution_schedule

run_distribution_tick_async = _run_distribution_tick_async
run_group_distribution_async = _run_group_distribution_async

__all__ = [
    "run_distribution_tick",
    "run_distribution_tick_async",
    "run_group_distribution",
    "run_group_distribution_async",
]


def _enqueue_group_distribution(group_id: int) -> None:
    run_group_distribution.apply_async(kwargs={"group_id": group_id}, queue="q_normal")


@celery_app.task(name="codecircle.workers.tasks.distribution.run_distribution_tick")
def run_distribution_tick() -> dict[str, object]:
    return run_async_job(run_distribution_tick_async(enqueue_group=_enqueue_group_distribution))


@celery_app.task(name="codecircle.workers.tasks.distribution.run_group_distribution")
def run_group_distribution(group_id: int) -> dict[str, object]:
    return run_async_job(run_group_distribution_async(group_id=group_id))


configure_distribution_schedule(celery_app)
