from __future__ import annotations

from datetime import date, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.assignments.errors import (
    AssignmentAccessError,
    AssignmentNotFoundError,
    AssignmentStateError,
)
from codecircle.assignments.types import AssignmentActionResult, AssignmentView
from codecircle.core.config import get_settings
from codecircle.core.time import local_date
from codecircle.db.models.code_assignments import CodeAssignment
from codecircle.db.repo.assignments_repo import AssignmentsRepo
from codecircle.db.repo.codes_repo import CodesRepo
from codecircle.db.repo.members_repo import MembersRepo
from codecircle.penalties.purge import MemberPurgeService
from codecircle.penalties.service import PenaltyService, transition_notification
from codecircle.penalties.types import PenaltyKind, PenaltyStage, PenaltyThresholds
from codecircle.services.notifications import Notification, NotificationKind

logger = structlog.get_logger(__name__)


class AssignmentActionsService:
    @staticmethod
    async def _load_for_update(session: AsyncSession, *, assignment_id: int) -> CodeAssignment:
        assignment = await AssignmentsRepo.get_by_id_for_update(session, assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError
        return assignment

    @staticmethod
    async def list_for_date(
        session: AsyncSession,
        *,
        member_id: int,
        assigned_date: date,
        used: bool | None = False,
    ) -> list[AssignmentView]:
        rows = await AssignmentsRepo.list_for_viewer_date(
            session,
            viewer_id=member_id,
            assigned_date=assigned_date,
            used=used,
        )
        return [
            AssignmentView(
                assignment_id=assignment.id,
                code_id=assignment.code_id,
                owner_id=assignment.owner_id,
                code_text=code_text,
                assigned_date=assignment.assigned_date,
                used=assignment.used,
                verified=assignment.verified,
                marked_paused=assignment.marked_paused,
                disputed=assignment.disputed,
                carried_over_count=assignment.carried_over_count,
            )
            for assignment, code_text in rows
        ]

    @staticmethod
    async def mark_used(
        session: AsyncSession,
        *,
        assignment_id: int,
        viewer_id: int,
        now_utc: datetime,
    ) -> AssignmentActionResult:
        assignment = await AssignmentActionsService._load_for_update(session, assignment_id=assignment_id)
        if assignment.viewer_id != viewer_id:
            raise AssignmentAccessError
        if assignment.used:
            return AssignmentActionResult(assignment_id=assignment_id, changed=False)

        streak_reset = await PenaltyService.record_success(
            session,
            member_id=viewer_id,
            kind=PenaltyKind.USAGE,
            now_utc=now_utc,
        )
        await AssignmentsRepo.set_used(session, assignment_id=assignment_id, used_at=now_utc)
        logger.info(
            "assignment_marked_used",
            assignment_id=assignment_id,
            viewer_id=viewer_id,
            owner_id=assignment.owner_id,
        )

        notifications: tuple[Notification, ...] = ()
        if get_settings().penalty_confirmation_required:
            viewer = await MembersRepo.get_by_id(session, viewer_id)
            code = await CodesRepo.get_by_id(session, assignment.code_id)
            notifications = (
                Notification(
                    member_id=assignment.owner_id,
                    kind=NotificationKind.CONFIRM_REQUEST,
                    params={
                        "viewer_name": viewer.display_name if viewer is not None else str(viewer_id),
                        "day_number": code.day_number if code is not None else "?",
                    },
                ),
            )
        return AssignmentActionResult(
            assignment_id=assignment_id,
            changed=True,
            streak_reset=streak_reset,
            notifications=notifications,
        )

    @staticmethod
    async def mark_paused(
        session: AsyncSession,
        *,
        assignment_id: int,
        viewer_id: int,
    ) -> AssignmentActionResult:
        assignment = await AssignmentActionsService._load_for_update(session, assignment_id=assignment_id)
        if assignment.viewer_id != viewer_id:
            raise AssignmentAccessError
        if assignment.used:
            raise AssignmentStateError
        if assignment.marked_paused:
            return AssignmentActionResult(assignment_id=assignment_id, changed=False)

        await AssignmentsRepo.set_paused(session, assignment_id=assignment_id)
        logger.info("assignment_marked_paused", assignment_id=assignment_id, viewer_id=viewer_id)
        return AssignmentActionResult(assignment_id=assignment_id, changed=True)

    @staticmethod
    async def confirm_usage(
        session: AsyncSession,
        *,
        assignment_id: int,
        owner_id: int,
        now_utc: datetime,
    ) -> AssignmentActionResult:
        assignment = await AssignmentActionsService._load_for_update(session, assignment_id=assignment_id)
        if assignment.owner_id != owner_id:
            raise AssignmentAccessError
        if not assignment.used:
            raise AssignmentStateError
        if assignment.verified:
            return AssignmentActionResult(assignment_id=assignment_id, changed=False)

        streak_reset = await PenaltyService.record_success(
            session,
            member_id=owner_id,
            kind=PenaltyKind.CONFIRMATION,
            now_utc=now_utc,
        )
        await AssignmentsRepo.set_verified(session, assignment_id=assignment_id, verified_at=now_utc)
        logger.info("assignment_usage_confirmed", assignment_id=assignment_id, owner_id=owner_id)
        return AssignmentActionResult(assignment_id=assignment_id, changed=True, streak_reset=streak_reset)

    @staticmethod
    async def dispute_usage(
        session: AsyncSession,
        *,
        assignment_id: int,
        owner_id: int,
        now_utc: datetime,
    ) -> AssignmentActionResult:
        """A false usage claim: the assignment goes back to unused and the viewer takes a USAGE miss now.

        The miss carries the assignment date; the checkpoint for that date does not count it again.
        """
        assignment = await AssignmentActionsService._load_for_update(session, assignment_id=assignment_id)
        if assignment.owner_id != owner_id:
            raise AssignmentAccessError
        if assignment.verified or not assignment.used:
            raise AssignmentStateError

        viewer_id = assignment.viewer_id
        miss_date = assignment.assigned_date
        await AssignmentsRepo.set_disputed(session, assignment_id=assignment_id)
        logger.info(
            "assignment_usage_disputed",
            assignment_id=assignment_id,
            owner_id=owner_id,
            viewer_id=viewer_id,
        )

        thresholds = PenaltyThresholds.from_settings(get_settings())
        transition = await PenaltyService.record_miss(
            session,
            member_id=viewer_id,
            kind=PenaltyKind.USAGE,
            miss_date=miss_date,
            now_utc=now_utc,
            thresholds=thresholds,
        )
        telegram_user_id: int | None = None
        purged = transition.counted and transition.stage == PenaltyStage.DELETED
        if purged:
            viewer = await MembersRepo.get_by_id(session, viewer_id)
            telegram_user_id = viewer.telegram_user_id if viewer is not None else None
            await MemberPurgeService.purge_member(session, member_id=viewer_id)

        notifications: list[Notification] = []
        if not purged:
            notifications.append(Notification(member_id=viewer_id, kind=NotificationKind.USAGE_DISPUTED))
        penalty_notice = transition_notification(
            transition,
            thresholds=thresholds,
            telegram_user_id=telegram_user_id,
        )
        if penalty_notice is not None:
            notifications.append(penalty_notice)
        return AssignmentActionResult(
            assignment_id=assignment_id,
            changed=True,
            penalty=transition,
            notifications=tuple(notifications),
        )

    @staticmethod
    async def count_today(session: AsyncSession, *, code_id: int, now_utc: datetime) -> int:
        return await AssignmentsRepo.count_for_code_date(
            session,
            code_id=code_id,
            assigned_date=local_date(now_utc),
        )
