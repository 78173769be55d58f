from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from codecircle.core.time import local_date, local_now
from codecircle.db.repo.distribution_runs_repo import DistributionRunsRepo
from codecircle.db.session import SessionLocal
from codecircle.distribution.service import DistributionService
from codecircle.distribution.trigger import groups_due_now
from codecircle.groups.settings_service import GroupSettingsService
from codecircle.services.notifications import TelegramNotifier
from codecircle.workers.tasks.distribution_config import DISTRIBUTION_CATCHUP_MINUTES

logger = structlog.get_logger("codecircle.workers.tasks.distribution")

EnqueueGroupFn = Callable[[int], object]


async def run_distribution_tick_async(
    *,
    enqueue_group: EnqueueGroupFn,
    now_utc: datetime | None = None,
    catchup_minutes: int = DISTRIBUTION_CATCHUP_MINUTES,
) -> dict[str, object]:
    resolved_now = now_utc or datetime.now(timezone.utc)
    today = local_date(resolved_now)
    clock = local_now(resolved_now).time()

    async with SessionLocal.begin() as session:
        snapshots = await GroupSettingsService.list_group_settings(session)
        due_group_ids = groups_due_now(snapshots, current=clock, catchup_minutes=catchup_minutes)
        pending_group_ids: list[int] = []
        for group_id in due_group_ids:
            run = await DistributionRunsRepo.get(session, group_id=group_id, local_date=today)
            if run is None or run.status == "FAILED":
                pending_group_ids.append(group_id)

    for group_id in pending_group_ids:
        enqueue_group(group_id)

    result: dict[str, object] = {
        "generated_at": resolved_now.isoformat(),
        "local_date": today.isoformat(),
        "groups_total": len(snapshots),
        "groups_due": len(due_group_ids),
        "groups_enqueued": len(pending_group_ids),
    }
    if pending_group_ids:
        logger.info("distribution_tick_enqueued", group_ids=pending_group_ids, **result)
    return result


async def run_group_distribution_async(
    *,
    group_id: int,
    now_utc: datetime | None = None,
) -> dict[str, object]:
    resolved_now = now_utc or datetime.now(timezone.utc)
    result = await DistributionService.run_for_group(
        group_id=group_id,
        now_utc=resolved_now,
        notifier=TelegramNotifier(),
    )
    return result.as_dict()
