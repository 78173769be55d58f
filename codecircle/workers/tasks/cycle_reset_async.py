from __future__ import annotations

from datetime import datetime, timezone

import structlog

from codecircle.codes.service import CodeLedgerService
from codecircle.core.time import local_date
from codecircle.db.repo.job_runs_repo import JobRunsRepo
from codecircle.db.session import SessionLocal
from codecircle.workers.tasks.cycle_reset_config import CYCLE_RESET_JOB_NAME

logger = structlog.get_logger("codecircle.workers.tasks.cycle_reset")


async def run_cycle_reset_async(*, now_utc: datetime | None = None) -> dict[str, object]:
    resolved_now = now_utc or datetime.now(timezone.utc)
    run_key = local_date(resolved_now).strftime("%Y-%m")

    async with SessionLocal.begin() as session:
        claimed = await JobRunsRepo.create_once(
            session,
            job_name=CYCLE_RESET_JOB_NAME,
            run_key=run_key,
            created_at=resolved_now,
        )
        if not claimed:
            logger.info("cycle_reset_already_ran", run_key=run_key)
            return {"generated_at": resolved_now.isoformat(), "run_key": run_key, "skipped": True}
        reset = await CodeLedgerService.reset_cycle(session)

    result: dict[str, object] = {
        "generated_at": resolved_now.isoformat(),
        "run_key": run_key,
        "skipped": False,
        "assignments_deleted": reset.assignments_deleted,
        "codes_deleted": reset.codes_deleted,
    }
    logger.info("cycle_reset_finished", **result)
    return result
