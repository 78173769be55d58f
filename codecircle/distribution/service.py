from __future__ import annotations

import random
from datetime import date, datetime, timedelta

import structlog

from codecircle.core.config import get_settings
from codecircle.core.time import local_date
from codecircle.db.repo.assignments_repo import AssignmentsRepo
from codecircle.db.repo.codes_repo import CodesRepo
from codecircle.db.repo.distribution_runs_repo import DistributionRunsRepo
from codecircle.db.repo.groups_repo import GroupsRepo
from codecircle.db.repo.members_repo import MembersRepo
from codecircle.db.retry import StoreUnavailableError, run_with_store_retry
from codecircle.db.session import SessionLocal
from codecircle.distribution.progression import (
    group_next_day,
    owner_next_days,
    pending_days,
    select_due_codes,
)
from codecircle.distribution.selection import build_candidate_pool, open_slots, order_candidates
from codecircle.distribution.types import (
    CodeDistributionOutcome,
    DueCode,
    GroupDistributionResult,
    GroupRunOutcome,
)
from codecircle.groups.settings_service import GroupSettingsService
from codecircle.groups.types import GroupSettingsSnapshot
from codecircle.services.notifications import Notification, NotificationKind, Notifier

logger = structlog.get_logger(__name__)

RUN_STATUS_COMPLETED = "COMPLETED"
RUN_STATUS_FAILED = "FAILED"


async def _store_call(operation, *, operation_name: str):
    settings = get_settings()
    return await run_with_store_retry(
        operation,
        operation_name=operation_name,
        attempts=settings.store_retry_attempts,
        backoff_max_ms=settings.store_retry_backoff_max_ms,
    )


class DistributionService:
    @staticmethod
    async def _claim_run(
        *,
        group_id: int,
        today: date,
        now_utc: datetime,
    ) -> tuple[GroupSettingsSnapshot | None, GroupRunOutcome | None]:
        async with SessionLocal.begin() as session:
            group = await GroupsRepo.get_by_id(session, group_id)
            if group is None:
                return None, GroupRunOutcome.GROUP_MISSING

            settings = await GroupSettingsService.get_group_settings(session, group_id=group_id)
            if not settings.distribution_eligible:
                return settings, GroupRunOutcome.INELIGIBLE

            claimed = await DistributionRunsRepo.try_create(
                session,
                group_id=group_id,
                local_date=today,
                started_at=now_utc,
            )
            if not claimed:
                claimed = await DistributionRunsRepo.try_reclaim_failed(
                    session,
                    group_id=group_id,
                    local_date=today,
                    started_at=now_utc,
                )
            if not claimed:
                return settings, GroupRunOutcome.ALREADY_RAN
        return settings, None

    @staticmethod
    async def _plan(
        *,
        group_id: int,
        today: date,
        distribution_days: int,
    ) -> tuple[int | None, list[DueCode], set[int]]:
        async with SessionLocal.begin() as session:
            owner_days = owner_next_days(await CodesRepo.list_owner_progress(session, group_id=group_id))
            due_codes: list[DueCode] = []
            for day_number in pending_days(owner_days, distribution_days=distribution_days):
                active_codes = await CodesRepo.list_active_for_day(
                    session,
                    group_id=group_id,
                    day_number=day_number,
                )
                due_codes.extend(select_due_codes(active_codes, owner_days))
            paused_viewer_ids = await AssignmentsRepo.list_paused_viewer_ids(
                session,
                group_id=group_id,
                assigned_date=today - timedelta(days=1),
            )
        return group_next_day(owner_days), due_codes, paused_viewer_ids

    @staticmethod
    async def _load_candidates(
        code: DueCode,
        *,
        group_id: int,
        today: date,
        paused_viewer_ids: set[int],
        rng: random.Random,
    ) -> tuple[list[int], int]:
        async with SessionLocal.begin() as session:
            member_ids = await MembersRepo.list_member_ids_for_group(
                session,
                group_id=group_id,
                exclude_member_id=code.owner_id,
            )
            seen_viewer_ids = await AssignmentsRepo.list_viewer_ids_for_owner(session, owner_id=code.owner_id)
            already_assigned = await AssignmentsRepo.count_for_code_date(
                session,
                code_id=code.code_id,
                assigned_date=today,
            )
        pool = build_candidate_pool(member_ids, owner_id=code.owner_id, seen_viewer_ids=seen_viewer_ids)
        return order_candidates(pool, priority_ids=paused_viewer_ids, rng=rng), already_assigned

    @staticmethod
    async def _insert_assignment(code: DueCode, *, viewer_id: int, today: date) -> bool:
        async with SessionLocal.begin() as session:
            return await AssignmentsRepo.insert_once(
                session,
                code_id=code.code_id,
                owner_id=code.owner_id,
                viewer_id=viewer_id,
                assigned_date=today,
            )

    @staticmethod
    async def _mark_distributed(code: DueCode, *, now_utc: datetime) -> None:
        async with SessionLocal.begin() as session:
            await CodesRepo.mark_distributed(session, code_id=code.code_id, now_utc=now_utc)

    @staticmethod
    async def distribute_code(
        code: DueCode,
        *,
        group_id: int,
        today: date,
        now_utc: datetime,
        paused_viewer_ids: set[int],
        rng: random.Random,
    ) -> CodeDistributionOutcome:
        """Hands one code to fresh viewers; every write commits before the next code is planned."""
        try:
            candidates, already_assigned = await _store_call(
                lambda: DistributionService._load_candidates(
                    code,
                    group_id=group_id,
                    today=today,
                    paused_viewer_ids=paused_viewer_ids,
                    rng=rng,
                ),
                operation_name="distribution_load_candidates",
            )
        except StoreUnavailableError:
            logger.exception("distribution_code_skipped", code_id=code.code_id, group_id=group_id)
            return CodeDistributionOutcome(
                code_id=code.code_id,
                owner_id=code.owner_id,
                day_number=code.day_number,
                target=0,
                already_assigned=0,
                assigned_viewer_ids=[],
                failed=True,
            )

        slots = open_slots(views_per_day=code.views_per_day, already_assigned=already_assigned)
        outcome = CodeDistributionOutcome(
            code_id=code.code_id,
            owner_id=code.owner_id,
            day_number=code.day_number,
            target=min(slots, len(candidates)),
            already_assigned=already_assigned,
            assigned_viewer_ids=[],
        )
        for viewer_id in candidates:
            if outcome.assigned_total >= slots:
                break
            try:
                inserted = await _store_call(
                    lambda viewer_id=viewer_id: DistributionService._insert_assignment(
                        code,
                        viewer_id=viewer_id,
                        today=today,
                    ),
                    operation_name="distribution_insert_assignment",
                )
            except StoreUnavailableError:
                logger.exception(
                    "distribution_code_skipped",
                    code_id=code.code_id,
                    group_id=group_id,
                    assigned=outcome.assigned_total,
                )
                outcome.failed = True
                return outcome
            if inserted:
                outcome.assigned_viewer_ids.append(viewer_id)
            else:
                outcome.duplicates += 1

        try:
            await _store_call(
                lambda: DistributionService._mark_distributed(code, now_utc=now_utc),
                operation_name="distribution_mark_code",
            )
        except StoreUnavailableError:
            logger.exception("distribution_code_status_not_updated", code_id=code.code_id, group_id=group_id)
            outcome.failed = True
        return outcome

    @staticmethod
    async def _finish_run(
        *,
        group_id: int,
        today: date,
        status: str,
        now_utc: datetime,
        next_day: int | None = None,
        outcomes: list[CodeDistributionOutcome] | None = None,
    ) -> None:
        resolved_outcomes = outcomes or []

        async def _write() -> None:
            async with SessionLocal.begin() as session:
                await DistributionRunsRepo.finish(
                    session,
                    group_id=group_id,
                    local_date=today,
                    status=status,
                    finished_at=now_utc,
                    next_day=next_day,
                    codes_total=len(resolved_outcomes),
                    codes_distributed=sum(1 for item in resolved_outcomes if not item.failed),
                    codes_failed=sum(1 for item in resolved_outcomes if item.failed),
                    assignments_created=sum(item.assigned_total for item in resolved_outcomes),
                )

        await _store_call(_write, operation_name="distribution_finish_run")

    @staticmethod
    async def run_for_group(
        *,
        group_id: int,
        now_utc: datetime,
        notifier: Notifier | None = None,
        rng: random.Random | None = None,
    ) -> GroupDistributionResult:
        today = local_date(now_utc)
        resolved_rng = rng or random.Random()

        settings, early_outcome = await _store_call(
            lambda: DistributionService._claim_run(group_id=group_id, today=today, now_utc=now_utc),
            operation_name="distribution_claim_run",
        )
        if early_outcome is not None:
            reason = settings.ineligibility_reason if settings is not None else None
            logger.info(
                "distribution_group_skipped",
                group_id=group_id,
                local_date=today.isoformat(),
                outcome=early_outcome.value,
                reason=reason,
            )
            return GroupDistributionResult(
                group_id=group_id,
                local_date=today,
                outcome=early_outcome,
                reason=reason,
            )

        try:
            next_day, due_codes, paused_viewer_ids = await _store_call(
                lambda: DistributionService._plan(
                    group_id=group_id,
                    today=today,
                    distribution_days=settings.distribution_days,
                ),
                operation_name="distribution_plan",
            )
        except Exception:
            logger.exception("distribution_plan_failed", group_id=group_id, local_date=today.isoformat())
            await DistributionService._finish_run(
                group_id=group_id,
                today=today,
                status=RUN_STATUS_FAILED,
                now_utc=now_utc,
            )
            return GroupDistributionResult(
                group_id=group_id,
                local_date=today,
                outcome=GroupRunOutcome.FAILED,
                reason="plan_failed",
            )

        logger.info(
            "distribution_group_started",
            group_id=group_id,
            local_date=today.isoformat(),
            next_day=next_day,
            due_codes_total=len(due_codes),
        )

        outcomes: list[CodeDistributionOutcome] = []
        for code in due_codes:
            outcome = await DistributionService.distribute_code(
                code,
                group_id=group_id,
                today=today,
                now_utc=now_utc,
                paused_viewer_ids=paused_viewer_ids,
                rng=resolved_rng,
            )
            outcomes.append(outcome)
            logger.info(
                "distribution_code_processed",
                group_id=group_id,
                code_id=code.code_id,
                owner_id=code.owner_id,
                day_number=code.day_number,
                assigned=outcome.assigned_total,
                target=outcome.target,
                views_per_day=code.views_per_day,
                duplicates=outcome.duplicates,
                failed=outcome.failed,
            )

        await DistributionService._finish_run(
            group_id=group_id,
            today=today,
            status=RUN_STATUS_COMPLETED,
            now_utc=now_utc,
            next_day=next_day,
            outcomes=outcomes,
        )

        codes_per_viewer: dict[int, int] = {}
        for outcome in outcomes:
            for viewer_id in outcome.assigned_viewer_ids:
                codes_per_viewer[viewer_id] = codes_per_viewer.get(viewer_id, 0) + 1

        viewers_notified = 0
        if notifier is not None and codes_per_viewer:
            delivery = await notifier.deliver(
                [
                    Notification(
                        member_id=viewer_id,
                        kind=NotificationKind.CODES_WAITING,
                        params={"count": count},
                    )
                    for viewer_id, count in sorted(codes_per_viewer.items())
                ]
            )
            viewers_notified = delivery.sent_total

        result = GroupDistributionResult(
            group_id=group_id,
            local_date=today,
            outcome=GroupRunOutcome.COMPLETED,
            next_day=next_day,
            codes_total=len(outcomes),
            codes_distributed=sum(1 for item in outcomes if not item.failed),
            codes_failed=sum(1 for item in outcomes if item.failed),
            assignments_created=sum(item.assigned_total for item in outcomes),
            viewers_notified=viewers_notified,
        )
        logger.info("distribution_group_finished", **result.as_dict())
        return result
