from __future__ import annotations

from datetime import datetime, timezone

from codecircle.penalties.service import PenaltyCheckpointService
from codecircle.services.notifications import TelegramNotifier
from codecircle.workers.asyncio_runner import run_async_job
from codecircle.workers.celery_app import celery_app
from codecircle.workers.tasks.penalties_schedule import configure_penalties_schedule


async def run_penalty_checkpoint_async(*, now_utc: datetime | None = None) -> dict[str, object]:
    return await PenaltyCheckpointService.run_daily_checkpoint(
        now_utc=now_utc or datetime.now(timezone.utc),
        notifier=TelegramNotifier(),
    )


@celery_app.task(name="codecircle.workers.tasks.penalties.run_penalty_checkpoint")
def run_penalty_checkpoint() -> dict[str, object]:
    return run_async_job(run_penalty_checkpoint_async())


configure_penalties_schedule(celery_app)
