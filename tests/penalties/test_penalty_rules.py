from __future__ import annotations

from datetime import date

from codecircle.penalties.rules import apply_miss, apply_success, classify_stage
from codecircle.penalties.types import PenaltySnapshot, PenaltyStage, PenaltyThresholds

THRESHOLDS = PenaltyThresholds()


def snapshot(
    *,
    miss_streak: int = 0,
    codes_suspended: bool = False,
    last_miss_date: date | None = None,
) -> PenaltySnapshot:
    return PenaltySnapshot(
        miss_streak=miss_streak,
        codes_suspended=codes_suspended,
        last_miss_date=last_miss_date,
    )


def test_classify_stage_follows_thresholds() -> None:
    assert classify_stage(0, THRESHOLDS) == PenaltyStage.CLEAN
    assert classify_stage(1, THRESHOLDS) == PenaltyStage.WARNED
    assert classify_stage(2, THRESHOLDS) == PenaltyStage.SUSPENDED
    assert classify_stage(3, THRESHOLDS) == PenaltyStage.DELETED
    assert classify_stage(9, THRESHOLDS) == PenaltyStage.DELETED


def test_consecutive_misses_walk_warn_suspend_delete() -> None:
    state = snapshot()
    stages = []
    for day in (1, 2, 3):
        state, stage, counted = apply_miss(state, miss_date=date(2026, 3, day), thresholds=THRESHOLDS)
        assert counted is True
        stages.append(stage)

    assert stages == [PenaltyStage.WARNED, PenaltyStage.SUSPENDED, PenaltyStage.DELETED]
    assert state.miss_streak == 3
    assert state.codes_suspended is True


def test_second_miss_on_same_date_is_ignored() -> None:
    state, _, _ = apply_miss(snapshot(), miss_date=date(2026, 3, 1), thresholds=THRESHOLDS)

    again, stage, counted = apply_miss(state, miss_date=date(2026, 3, 1), thresholds=THRESHOLDS)

    assert counted is False
    assert again.miss_streak == 1
    assert stage == PenaltyStage.WARNED


def test_success_resets_streak_and_flag() -> None:
    state = snapshot(miss_streak=2, codes_suspended=True, last_miss_date=date(2026, 3, 2))

    reset = apply_success(state)

    assert reset.miss_streak == 0
    assert reset.codes_suspended is False
    assert reset.last_miss_date == date(2026, 3, 2)


def test_success_on_clean_state_is_noop() -> None:
    state = snapshot()

    assert apply_success(state) is state


def test_custom_thresholds_from_settings() -> None:
    class _Settings:
        penalty_warn_streak = 2
        penalty_suspend_streak = 4
        penalty_delete_streak = 6
        penalty_suspension_days = 3

    thresholds = PenaltyThresholds.from_settings(_Settings())

    assert classify_stage(1, thresholds) == PenaltyStage.CLEAN
    assert classify_stage(5, thresholds) == PenaltyStage.SUSPENDED
    assert thresholds.suspension_days == 3
