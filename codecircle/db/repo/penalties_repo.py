from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.models.penalty_state import PenaltyState


class PenaltiesRepo:
    @staticmethod
    async def get(session: AsyncSession, *, member_id: int, kind: str) -> PenaltyState | None:
        return await session.get(PenaltyState, (member_id, kind))

    @staticmethod
    async def get_for_update(session: AsyncSession, *, member_id: int, kind: str) -> PenaltyState | None:
        stmt = (
            select(PenaltyState)
            .where(PenaltyState.member_id == member_id, PenaltyState.kind == kind)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_default_state(
        session: AsyncSession,
        *,
        member_id: int,
        kind: str,
        now_utc: datetime,
    ) -> PenaltyState:
        state = PenaltyState(
            member_id=member_id,
            kind=kind,
            miss_streak=0,
            codes_suspended=False,
            last_miss_date=None,
            updated_at=now_utc,
        )
        session.add(state)
        await session.flush()
        return state

    @staticmethod
    async def count_for_member(session: AsyncSession, *, member_id: int) -> int:
        total = await session.scalar(
            select(func.count()).select_from(PenaltyState).where(PenaltyState.member_id == member_id)
        )
        return int(total or 0)

    @staticmethod
    async def delete_for_member(session: AsyncSession, *, member_id: int) -> int:
        result = await session.execute(delete(PenaltyState).where(PenaltyState.member_id == member_id))
        return result.rowcount or 0
