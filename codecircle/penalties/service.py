from __future__ import annotations

from datetime import date, datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.core.config import get_settings
from codecircle.core.time import local_date
from codecircle.db.models.penalty_state import PenaltyState
from codecircle.db.repo.assignments_repo import AssignmentsRepo
from codecircle.db.repo.codes_repo import CodesRepo
from codecircle.db.repo.job_runs_repo import JobRunsRepo
from codecircle.db.repo.members_repo import MembersRepo
from codecircle.db.repo.penalties_repo import PenaltiesRepo
from codecircle.db.retry import StoreUnavailableError, run_with_store_retry
from codecircle.db.session import SessionLocal
from codecircle.penalties.errors import PurgeIncompleteError
from codecircle.penalties.purge import MemberPurgeService
from codecircle.penalties.rules import apply_miss, apply_success
from codecircle.penalties.types import (
    CheckpointSummary,
    PenaltyKind,
    PenaltySnapshot,
    PenaltyStage,
    PenaltyThresholds,
    PenaltyTransition,
)
from codecircle.services.notifications import Notification, NotificationKind, Notifier

logger = structlog.get_logger(__name__)

PENALTY_CHECKPOINT_JOB_NAME = "penalty_daily_checkpoint"


class PenaltyService:
    @staticmethod
    def _snapshot_from_model(state: PenaltyState) -> PenaltySnapshot:
        return PenaltySnapshot(
            miss_streak=state.miss_streak,
            codes_suspended=state.codes_suspended,
            last_miss_date=state.last_miss_date,
        )

    @staticmethod
    def _apply_snapshot_to_model(state: PenaltyState, snapshot: PenaltySnapshot, now_utc: datetime) -> None:
        state.miss_streak = snapshot.miss_streak
        state.codes_suspended = snapshot.codes_suspended
        state.last_miss_date = snapshot.last_miss_date
        state.updated_at = now_utc

    @staticmethod
    async def _get_or_create_state_for_update(
        session: AsyncSession,
        *,
        member_id: int,
        kind: PenaltyKind,
        now_utc: datetime,
    ) -> PenaltyState:
        state = await PenaltiesRepo.get_for_update(session, member_id=member_id, kind=kind.value)
        if state is not None:
            return state
        return await PenaltiesRepo.create_default_state(
            session,
            member_id=member_id,
            kind=kind.value,
            now_utc=now_utc,
        )

    @staticmethod
    async def record_miss(
        session: AsyncSession,
        *,
        member_id: int,
        kind: PenaltyKind,
        miss_date: date,
        now_utc: datetime,
        thresholds: PenaltyThresholds,
    ) -> PenaltyTransition:
        state = await PenaltyService._get_or_create_state_for_update(
            session,
            member_id=member_id,
            kind=kind,
            now_utc=now_utc,
        )
        snapshot, stage, counted = apply_miss(
            PenaltyService._snapshot_from_model(state),
            miss_date=miss_date,
            thresholds=thresholds,
        )
        PenaltyService._apply_snapshot_to_model(state, snapshot, now_utc)
        await session.flush()

        codes_suspended_now = 0
        if counted and stage == PenaltyStage.SUSPENDED:
            codes_suspended_now = await CodesRepo.suspend_active_for_owner(
                session,
                owner_id=member_id,
                now_utc=now_utc,
            )
        return PenaltyTransition(
            member_id=member_id,
            kind=kind,
            miss_streak=snapshot.miss_streak,
            stage=stage,
            counted=counted,
            codes_suspended_now=codes_suspended_now,
        )

    @staticmethod
    async def record_success(
        session: AsyncSession,
        *,
        member_id: int,
        kind: PenaltyKind,
        now_utc: datetime,
    ) -> bool:
        """Resets the streak to zero; suspended codes still wait for their window to elapse."""
        state = await PenaltiesRepo.get_for_update(session, member_id=member_id, kind=kind.value)
        if state is None:
            return False
        snapshot = PenaltyService._snapshot_from_model(state)
        updated = apply_success(snapshot)
        if updated == snapshot:
            return False
        PenaltyService._apply_snapshot_to_model(state, updated, now_utc)
        await session.flush()
        logger.info("penalty_streak_reset", member_id=member_id, kind=kind.value)
        return True

    @staticmethod
    async def get_snapshot(session: AsyncSession, *, member_id: int, kind: PenaltyKind) -> PenaltySnapshot:
        state = await PenaltiesRepo.get(session, member_id=member_id, kind=kind.value)
        if state is None:
            return PenaltySnapshot(miss_streak=0, codes_suspended=False, last_miss_date=None)
        return PenaltyService._snapshot_from_model(state)


def transition_notification(
    transition: PenaltyTransition,
    *,
    thresholds: PenaltyThresholds,
    telegram_user_id: int | None,
) -> Notification | None:
    if not transition.counted:
        return None
    if transition.stage == PenaltyStage.WARNED:
        kind = (
            NotificationKind.PENALTY_WARNING
            if transition.kind == PenaltyKind.USAGE
            else NotificationKind.CONFIRMATION_WARNING
        )
        return Notification(member_id=transition.member_id, kind=kind)
    if transition.stage == PenaltyStage.SUSPENDED:
        return Notification(
            member_id=transition.member_id,
            kind=NotificationKind.PENALTY_SUSPENDED,
            params={
                "codes_total": transition.codes_suspended_now,
                "suspension_days": thresholds.suspension_days,
            },
        )
    if transition.stage == PenaltyStage.DELETED:
        return Notification(
            member_id=transition.member_id,
            kind=NotificationKind.PENALTY_DELETED,
            telegram_user_id=telegram_user_id,
        )
    return None


class PenaltyCheckpointService:
    @staticmethod
    async def _store_call(operation, *, operation_name: str):
        settings = get_settings()
        return await run_with_store_retry(
            operation,
            operation_name=operation_name,
            attempts=settings.store_retry_attempts,
            backoff_max_ms=settings.store_retry_backoff_max_ms,
        )

    @staticmethod
    async def _claim_checkpoint(*, today: date, now_utc: datetime) -> bool:
        async with SessionLocal.begin() as session:
            return await JobRunsRepo.create_once(
                session,
                job_name=PENALTY_CHECKPOINT_JOB_NAME,
                run_key=today.isoformat(),
                created_at=now_utc,
            )

    @staticmethod
    async def _reactivate_suspended(*, now_utc: datetime, suspension_days: int) -> list[int]:
        async with SessionLocal.begin() as session:
            return await CodesRepo.reactivate_suspended_before(
                session,
                cutoff_utc=now_utc - timedelta(days=suspension_days),
            )

    @staticmethod
    async def _penalize_member(
        *,
        member_id: int,
        kind: PenaltyKind,
        miss_date: date,
        today: date,
        now_utc: datetime,
        thresholds: PenaltyThresholds,
        unused_assignment_ids: list[int] | None = None,
    ) -> tuple[PenaltyTransition | None, int, int | None]:
        """One member in one transaction: carry-forward, miss and purge commit together."""
        async with SessionLocal.begin() as session:
            member = await MembersRepo.get_by_id(session, member_id)
            if member is None:
                return None, 0, None

            carried = 0
            if unused_assignment_ids and not await AssignmentsRepo.has_any_for_viewer_date(
                session,
                viewer_id=member_id,
                assigned_date=today,
            ):
                carried = await AssignmentsRepo.carry_forward(
                    session,
                    assignment_ids=unused_assignment_ids,
                    to_date=today,
                )

            transition = await PenaltyService.record_miss(
                session,
                member_id=member_id,
                kind=kind,
                miss_date=miss_date,
                now_utc=now_utc,
                thresholds=thresholds,
            )
            telegram_user_id = member.telegram_user_id
            if transition.counted and transition.stage == PenaltyStage.DELETED:
                await MemberPurgeService.purge_member(session, member_id=member_id)
        return transition, carried, telegram_user_id

    @staticmethod
    async def _apply_miss_safely(
        summary: CheckpointSummary,
        notifications: list[Notification],
        *,
        thresholds: PenaltyThresholds,
        **kwargs,
    ) -> PenaltyTransition | None:
        member_id = kwargs["member_id"]
        try:
            transition, carried, telegram_user_id = await PenaltyCheckpointService._store_call(
                lambda: PenaltyCheckpointService._penalize_member(thresholds=thresholds, **kwargs),
                operation_name="penalty_apply_miss",
            )
        except PurgeIncompleteError:
            summary.purge_failed += 1
            logger.exception("penalty_member_purge_failed", member_id=member_id)
            return None
        except StoreUnavailableError:
            summary.members_failed += 1
            logger.exception("penalty_member_skipped", member_id=member_id)
            return None

        summary.assignments_carried += carried
        if transition is None:
            return None
        if transition.counted:
            if transition.stage == PenaltyStage.WARNED:
                summary.warned += 1
            elif transition.stage == PenaltyStage.SUSPENDED:
                summary.suspended += 1
            elif transition.stage == PenaltyStage.DELETED:
                summary.purged += 1

        logger.info(
            "penalty_miss_recorded",
            member_id=member_id,
            kind=transition.kind.value,
            miss_streak=transition.miss_streak,
            stage=transition.stage.value,
            counted=transition.counted,
            carried=carried,
        )
        notification = transition_notification(
            transition,
            thresholds=thresholds,
            telegram_user_id=telegram_user_id,
        )
        if notification is not None:
            notifications.append(notification)
        return transition

    @staticmethod
    async def run_daily_checkpoint(
        *,
        now_utc: datetime,
        notifier: Notifier | None = None,
    ) -> dict[str, object]:
        settings = get_settings()
        thresholds = PenaltyThresholds.from_settings(settings)
        today = local_date(now_utc)
        yesterday = today - timedelta(days=1)
        summary = CheckpointSummary(local_date=today)

        claimed = await PenaltyCheckpointService._store_call(
            lambda: PenaltyCheckpointService._claim_checkpoint(today=today, now_utc=now_utc),
            operation_name="penalty_claim_checkpoint",
        )
        if not claimed:
            logger.info("penalty_checkpoint_already_ran", local_date=today.isoformat())
            return {**summary.as_dict(), "skipped": True}

        notifications: list[Notification] = []

        reactivated_owner_ids = await PenaltyCheckpointService._store_call(
            lambda: PenaltyCheckpointService._reactivate_suspended(
                now_utc=now_utc,
                suspension_days=thresholds.suspension_days,
            ),
            operation_name="penalty_reactivate_codes",
        )
        summary.codes_reactivated_owners = len(reactivated_owner_ids)
        notifications.extend(
            Notification(member_id=owner_id, kind=NotificationKind.CODES_REACTIVATED)
            for owner_id in reactivated_owner_ids
        )

        if settings.penalty_confirmation_required:
            async with SessionLocal.begin() as session:
                owner_ids = await AssignmentsRepo.list_unconfirmed_owner_ids(session, assigned_date=yesterday)
            for owner_id in owner_ids:
                transition = await PenaltyCheckpointService._apply_miss_safely(
                    summary,
                    notifications,
                    thresholds=thresholds,
                    member_id=owner_id,
                    kind=PenaltyKind.CONFIRMATION,
                    miss_date=yesterday,
                    today=today,
                    now_utc=now_utc,
                )
                if transition is not None and transition.counted:
                    summary.confirmation_misses += 1

        async with SessionLocal.begin() as session:
            unused_by_viewer = await AssignmentsRepo.list_unused_for_date(session, assigned_date=yesterday)
        for viewer_id, assignment_ids in unused_by_viewer.items():
            transition = await PenaltyCheckpointService._apply_miss_safely(
                summary,
                notifications,
                thresholds=thresholds,
                member_id=viewer_id,
                kind=PenaltyKind.USAGE,
                miss_date=yesterday,
                today=today,
                now_utc=now_utc,
                unused_assignment_ids=assignment_ids,
            )
            if transition is not None and transition.counted:
                summary.usage_misses += 1

        if notifier is not None and notifications:
            delivery = await notifier.deliver(notifications)
            summary.notifications_sent = delivery.sent_total

        result = summary.as_dict()
        logger.info("penalty_checkpoint_finished", **result)
        return result
