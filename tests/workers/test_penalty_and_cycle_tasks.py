from __future__ import annotations

from datetime import datetime, timezone

import pytest

from codecircle.codes.types import CycleResetResult
from codecircle.workers.celery_app import celery_app
from codecircle.workers.tasks import cycle_reset, cycle_reset_async, penalties
from tests.engine.fake_store import FakeSessionLocal


def test_run_penalty_checkpoint_task_wrapper(monkeypatch) -> None:
    async def fake_async() -> dict[str, object]:
        return {"local_date": "2026-03-10", "usage_misses": 3}

    monkeypatch.setattr(penalties, "run_penalty_checkpoint_async", fake_async)

    result = penalties.run_penalty_checkpoint()
    assert result == {"local_date": "2026-03-10", "usage_misses": 3}


def test_run_cycle_reset_task_wrapper(monkeypatch) -> None:
    async def fake_async() -> dict[str, object]:
        return {"run_key": "2026-04", "skipped": False}

    monkeypatch.setattr(cycle_reset, "run_cycle_reset_async", fake_async)

    result = cycle_reset.run_cycle_reset()
    assert result == {"run_key": "2026-04", "skipped": False}


def test_penalty_and_cycle_jobs_are_scheduled() -> None:
    schedule = celery_app.conf.beat_schedule

    assert schedule["penalty-daily-checkpoint"]["task"] == "codecircle.workers.tasks.penalties.run_penalty_checkpoint"
    assert schedule["cycle-reset-monthly"]["task"] == "codecircle.workers.tasks.cycle_reset.run_cycle_reset"
    assert schedule["cycle-reset-monthly"]["options"] == {"queue": "q_normal"}


@pytest.mark.asyncio
async def test_cycle_reset_runs_once_per_local_month(monkeypatch) -> None:
    claimed_keys: set[tuple[str, str]] = set()
    resets: list[object] = []

    async def _create_once(session, *, job_name: str, run_key: str, created_at: datetime) -> bool:
        if (job_name, run_key) in claimed_keys:
            return False
        claimed_keys.add((job_name, run_key))
        return True

    async def _reset_cycle(session):
        resets.append(session)
        return CycleResetResult(assignments_deleted=9, codes_deleted=3)

    monkeypatch.setattr(cycle_reset_async, "SessionLocal", FakeSessionLocal())
    monkeypatch.setattr(cycle_reset_async.JobRunsRepo, "create_once", _create_once)
    monkeypatch.setattr(cycle_reset_async.CodeLedgerService, "reset_cycle", _reset_cycle)

    # 2026-03-31 22:30 UTC is already April 1st in Cairo
    first = await cycle_reset_async.run_cycle_reset_async(now_utc=datetime(2026, 3, 31, 22, 30, tzinfo=timezone.utc))
    second = await cycle_reset_async.run_cycle_reset_async(now_utc=datetime(2026, 4, 1, 8, 0, tzinfo=timezone.utc))

    assert first["run_key"] == "2026-04"
    assert first["skipped"] is False
    assert first["codes_deleted"] == 3
    assert second == {"generated_at": second["generated_at"], "run_key": "2026-04", "skipped": True}
    assert len(resets) == 1
