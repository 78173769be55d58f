from __future__ import annotations

import random
from datetime import date, datetime, timedelta, timezone

import pytest

from codecircle.db.repo.assignments_repo import AssignmentsRepo
from codecircle.db.repo.codes_repo import CodesRepo
from codecircle.distribution.service import DistributionService
from codecircle.distribution.types import GroupRunOutcome
from tests.engine.fake_store import FakeEngineStore, RecordingNotifier

NOW_UTC = datetime(2026, 3, 10, 7, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 10)


def _store_with_members(monkeypatch, *, members: int, views: int = 50, days: int = 20) -> FakeEngineStore:
    store = FakeEngineStore()
    store.add_group(1, views=views, days=days)
    for member_id in range(1, members + 1):
        store.add_member(member_id, group_id=1)
    store.install(monkeypatch)
    return store


@pytest.mark.asyncio
async def test_first_run_hands_day_one_codes_to_every_other_member(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=4)
    code_ids = {owner_id: store.add_codes(owner_id, total=2, views_per_day=50) for owner_id in range(1, 5)}
    notifier = RecordingNotifier()

    result = await DistributionService.run_for_group(
        group_id=1,
        now_utc=NOW_UTC,
        notifier=notifier,
        rng=random.Random(7),
    )

    assert result.outcome == GroupRunOutcome.COMPLETED
    assert result.local_date == TODAY
    assert result.next_day == 1
    assert result.codes_total == 4
    assert result.assignments_created == 12
    for owner_id, owned in code_ids.items():
        day_one, day_two = owned
        assert store.viewers_of(day_one) == sorted(set(range(1, 5)) - {owner_id})
        assert store.viewers_of(day_two) == []
        assert store.codes[day_one].status == "distributed"
        assert store.codes[day_two].status == "active"
    assert store.runs[(1, TODAY)].status == "COMPLETED"
    assert [item.params["count"] for item in notifier.delivered] == [3, 3, 3, 3]
    assert result.viewers_notified == 4


@pytest.mark.asyncio
async def test_second_run_on_same_local_date_is_rejected(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=3)
    for owner_id in range(1, 4):
        store.add_codes(owner_id, total=1, views_per_day=50)

    first = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(1))
    second = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC + timedelta(minutes=3))

    assert first.outcome == GroupRunOutcome.COMPLETED
    assert second.outcome == GroupRunOutcome.ALREADY_RAN
    assert len(store.assignments) == 6


@pytest.mark.asyncio
async def test_viewer_never_receives_a_second_code_from_the_same_owner(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=4)
    for owner_id in range(1, 5):
        store.add_codes(owner_id, total=2, views_per_day=50)

    await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(3))
    next_result = await DistributionService.run_for_group(
        group_id=1,
        now_utc=NOW_UTC + timedelta(days=1),
        rng=random.Random(3),
    )

    assert next_result.outcome == GroupRunOutcome.COMPLETED
    assert next_result.next_day == 2
    assert next_result.codes_total == 4
    assert next_result.assignments_created == 0
    pairs = store.pairs()
    assert len(pairs) == len(set(pairs))
    assert all(owner_id != viewer_id for owner_id, viewer_id in pairs)


@pytest.mark.asyncio
async def test_daily_view_limit_caps_viewers_per_code(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=6, views=2)
    owned = store.add_codes(1, total=1, views_per_day=2)

    result = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(11))

    assert result.assignments_created == 2
    assert len(store.viewers_of(owned[0])) == 2
    assert 1 not in store.viewers_of(owned[0])


@pytest.mark.asyncio
async def test_shortfall_is_accepted_when_group_is_too_small(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=2, views=50)
    owned = store.add_codes(1, total=1, views_per_day=50)

    result = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(2))

    assert result.outcome == GroupRunOutcome.COMPLETED
    assert store.viewers_of(owned[0]) == [2]
    assert store.codes[owned[0]].status == "distributed"


@pytest.mark.asyncio
async def test_viewer_paused_yesterday_is_drawn_first(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=5, views=1)
    owner_two = store.add_codes(2, total=2, views_per_day=1)
    store.add_assignment(
        code_id=owner_two[0],
        viewer_id=4,
        assigned_date=TODAY - timedelta(days=1),
        marked_paused=True,
    )
    owner_one = store.add_codes(1, total=1, views_per_day=1)

    await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(5))

    assert store.viewers_of(owner_one[0]) == [4]
    assert 4 not in store.viewers_of(owner_two[1])


@pytest.mark.asyncio
async def test_duplicate_insert_does_not_consume_a_slot(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=4, views=2)
    owned = store.add_codes(1, total=1, views_per_day=2)
    real_insert = AssignmentsRepo.insert_once

    async def _racing_insert(session, **kwargs) -> bool:
        if kwargs["viewer_id"] == 2:
            return False
        return await real_insert(session, **kwargs)

    monkeypatch.setattr(AssignmentsRepo, "insert_once", _racing_insert)

    result = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(9))

    assert store.viewers_of(owned[0]) == [3, 4]
    assert result.assignments_created == 2


@pytest.mark.asyncio
async def test_transient_insert_error_is_retried(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=3)
    owned = store.add_codes(1, total=1, views_per_day=50)
    store.insert_failures_left = 2

    result = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(4))

    assert result.codes_failed == 0
    assert store.viewers_of(owned[0]) == [2, 3]


@pytest.mark.asyncio
async def test_code_is_skipped_after_retries_and_the_run_continues(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=3)
    first = store.add_codes(1, total=1, views_per_day=50)
    second = store.add_codes(2, total=1, views_per_day=50)
    store.insert_failures_left = 3

    result = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(4))

    assert result.outcome == GroupRunOutcome.COMPLETED
    assert result.codes_failed == 1
    assert result.codes_distributed == 1
    assert store.viewers_of(first[0]) == []
    assert store.codes[first[0]].status == "active"
    assert store.viewers_of(second[0]) == [1, 3]


@pytest.mark.asyncio
async def test_ineligible_group_is_not_recorded(monkeypatch) -> None:
    store = FakeEngineStore()
    store.add_group(1, scheduler_active=False)
    store.add_group(2, payment_mode_active=True)
    store.install(monkeypatch)

    inactive = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC)
    paying = await DistributionService.run_for_group(group_id=2, now_utc=NOW_UTC)

    assert inactive.outcome == GroupRunOutcome.INELIGIBLE
    assert inactive.reason == "scheduler_inactive"
    assert paying.reason == "payment_mode_active"
    assert store.runs == {}


@pytest.mark.asyncio
async def test_missing_group_is_reported(monkeypatch) -> None:
    FakeEngineStore().install(monkeypatch)

    result = await DistributionService.run_for_group(group_id=404, now_utc=NOW_UTC)

    assert result.outcome == GroupRunOutcome.GROUP_MISSING
    assert result.as_dict()["outcome"] == "GROUP_MISSING"


@pytest.mark.asyncio
async def test_failed_plan_marks_run_failed_and_can_be_retried(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=3)
    store.add_codes(1, total=1, views_per_day=50)
    real_progress = CodesRepo.list_owner_progress

    async def _broken_progress(session, *, group_id: int):
        raise RuntimeError("corrupt row")

    monkeypatch.setattr(CodesRepo, "list_owner_progress", _broken_progress)
    failed = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC)

    assert failed.outcome == GroupRunOutcome.FAILED
    assert failed.reason == "plan_failed"
    assert store.runs[(1, TODAY)].status == "FAILED"

    monkeypatch.setattr(CodesRepo, "list_owner_progress", real_progress)
    retried = await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(1))

    assert retried.outcome == GroupRunOutcome.COMPLETED
    assert retried.assignments_created == 2
    assert store.runs[(1, TODAY)].status == "COMPLETED"


@pytest.mark.asyncio
async def test_slow_owner_keeps_group_next_day_behind(monkeypatch) -> None:
    store = _store_with_members(monkeypatch, members=3)
    store.add_codes(1, total=3, views_per_day=50)
    store.add_codes(2, total=3, views_per_day=50)

    await DistributionService.run_for_group(group_id=1, now_utc=NOW_UTC, rng=random.Random(1))
    store.add_codes(3, total=3, views_per_day=50)
    result = await DistributionService.run_for_group(
        group_id=1,
        now_utc=NOW_UTC + timedelta(days=1),
        rng=random.Random(1),
    )

    assert result.next_day == 1
    distributed_days = sorted(code.day_number for code in store.codes.values() if code.status == "distributed")
    assert distributed_days == [1, 1, 1, 2, 2]
