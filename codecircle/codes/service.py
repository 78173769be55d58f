from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.codes.constants import CODE_TEXT_MAX_LENGTH
from codecircle.codes.errors import (
    CodeBatchAlreadyUploadedError,
    CodeBatchSizeError,
    CodeOwnerNotFoundError,
    CodeTextInvalidError,
)
from codecircle.codes.types import CodeUploadResult, CycleResetResult, OwnedCode
from codecircle.db.repo.assignments_repo import AssignmentsRepo
from codecircle.db.repo.codes_repo import CodesRepo
from codecircle.db.repo.members_repo import MembersRepo
from codecircle.groups.settings_service import GroupSettingsService

logger = structlog.get_logger(__name__)


def normalize_code_batch(raw_codes: Sequence[str], *, distribution_days: int) -> list[str]:
    codes = [raw_code.strip() for raw_code in raw_codes]
    if not codes or len(codes) > distribution_days:
        raise CodeBatchSizeError(received=len(codes), maximum=distribution_days)
    for code in codes:
        if not code or len(code) > CODE_TEXT_MAX_LENGTH:
            raise CodeTextInvalidError
    return codes


class CodeLedgerService:
    @staticmethod
    async def upload_batch(
        session: AsyncSession,
        *,
        owner_id: int,
        raw_codes: Sequence[str],
    ) -> CodeUploadResult:
        """Stores one upload cycle of codes; day numbers follow upload order."""
        owner = await MembersRepo.get_by_id(session, owner_id)
        if owner is None:
            raise CodeOwnerNotFoundError

        if await CodesRepo.has_codes_for_owner(session, owner_id=owner_id):
            raise CodeBatchAlreadyUploadedError

        settings = await GroupSettingsService.get_group_settings(session, group_id=owner.group_id)
        codes = normalize_code_batch(raw_codes, distribution_days=settings.distribution_days)
        created = await CodesRepo.create_batch(
            session,
            owner_id=owner_id,
            code_texts=codes,
            views_per_day=settings.daily_view_limit,
        )
        logger.info(
            "code_batch_uploaded",
            owner_id=owner_id,
            group_id=owner.group_id,
            codes_total=len(created),
            views_per_day=settings.daily_view_limit,
        )
        return CodeUploadResult(
            owner_id=owner_id,
            codes_total=len(created),
            views_per_day=settings.daily_view_limit,
        )

    @staticmethod
    async def list_owner_codes(session: AsyncSession, *, owner_id: int) -> list[OwnedCode]:
        codes = await CodesRepo.list_for_owner(session, owner_id=owner_id)
        return [
            OwnedCode(
                code_id=code.id,
                day_number=code.day_number,
                code_text=code.code_text,
                status=code.status,
                views_per_day=code.views_per_day,
            )
            for code in codes
        ]

    @staticmethod
    async def reset_cycle(session: AsyncSession) -> CycleResetResult:
        """Wipes every code and assignment; members, groups and penalty state stay."""
        assignments_deleted = await AssignmentsRepo.delete_all(session)
        codes_deleted = await CodesRepo.delete_all(session)
        logger.info(
            "code_cycle_reset",
            assignments_deleted=assignments_deleted,
            codes_deleted=codes_deleted,
        )
        return CycleResetResult(
            assignments_deleted=assignments_deleted,
            codes_deleted=codes_deleted,
        )
