from __future__ import annotations

from dataclasses import replace
from datetime import date

from codecircle.penalties.types import PenaltySnapshot, PenaltyStage, PenaltyThresholds


def classify_stage(miss_streak: int, thresholds: PenaltyThresholds) -> PenaltyStage:
    if miss_streak >= thresholds.delete_streak:
        return PenaltyStage.DELETED
    if miss_streak >= thresholds.suspend_streak:
        return PenaltyStage.SUSPENDED
    if miss_streak >= thresholds.warn_streak:
        return PenaltyStage.WARNED
    return PenaltyStage.CLEAN


def apply_miss(
    snapshot: PenaltySnapshot,
    *,
    miss_date: date,
    thresholds: PenaltyThresholds,
) -> tuple[PenaltySnapshot, PenaltyStage, bool]:
    """One miss per member and kind per day; a second miss on the same date is ignored."""
    if snapshot.last_miss_date == miss_date:
        return snapshot, classify_stage(snapshot.miss_streak, thresholds), False

    miss_streak = snapshot.miss_streak + 1
    stage = classify_stage(miss_streak, thresholds)
    updated = replace(
        snapshot,
        miss_streak=miss_streak,
        last_miss_date=miss_date,
        codes_suspended=snapshot.codes_suspended or stage in {PenaltyStage.SUSPENDED, PenaltyStage.DELETED},
    )
    return updated, stage, True


def apply_success(snapshot: PenaltySnapshot) -> PenaltySnapshot:
    if snapshot.miss_streak == 0 and not snapshot.codes_suspended:
        return snapshot
    return replace(snapshot, miss_streak=0, codes_suspended=False)
