from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.repo.assignments_repo import AssignmentsRepo
from codecircle.db.repo.codes_repo import CodesRepo
from codecircle.db.repo.members_repo import MembersRepo
from codecircle.db.repo.penalties_repo import PenaltiesRepo
from codecircle.penalties.errors import PurgeIncompleteError
from codecircle.penalties.types import PurgeResult

logger = structlog.get_logger(__name__)


class MemberPurgeService:
    @staticmethod
    async def _count_leftovers(session: AsyncSession, *, member_id: int) -> dict[str, int]:
        leftovers = {
            "assignments": await AssignmentsRepo.count_referencing_member(session, member_id=member_id),
            "codes": await CodesRepo.count_for_owner(session, owner_id=member_id),
            "penalty_state": await PenaltiesRepo.count_for_member(session, member_id=member_id),
            "members": int(await MembersRepo.exists_by_id(session, member_id)),
        }
        return {name: total for name, total in leftovers.items() if total > 0}

    @staticmethod
    async def purge_member(session: AsyncSession, *, member_id: int) -> PurgeResult:
        """Deletes the member and everything referencing it inside the caller's transaction.

        Raises ``PurgeIncompleteError`` when a row survives, which rolls the whole purge back.
        """
        assignments_deleted = await AssignmentsRepo.delete_referencing_member(session, member_id=member_id)
        codes_deleted = await CodesRepo.delete_for_owner(session, owner_id=member_id)
        penalty_rows_deleted = await PenaltiesRepo.delete_for_member(session, member_id=member_id)
        members_deleted = await MembersRepo.delete_by_id(session, member_id)

        leftovers = await MemberPurgeService._count_leftovers(session, member_id=member_id)
        if leftovers:
            logger.error("member_purge_incomplete", member_id=member_id, leftovers=leftovers)
            raise PurgeIncompleteError(member_id, leftovers)

        result = PurgeResult(
            member_id=member_id,
            assignments_deleted=assignments_deleted,
            codes_deleted=codes_deleted,
            penalty_rows_deleted=penalty_rows_deleted,
            members_deleted=members_deleted,
        )
        logger.warning(
            "member_purged",
            member_id=member_id,
            assignments_deleted=assignments_deleted,
            codes_deleted=codes_deleted,
            penalty_rows_deleted=penalty_rows_deleted,
        )
        return result
