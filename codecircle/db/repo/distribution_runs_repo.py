from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.models.distribution_runs import DistributionRun


class DistributionRunsRepo:
    @staticmethod
    async def get(session: AsyncSession, *, group_id: int, local_date: date) -> DistributionRun | None:
        return await session.get(DistributionRun, (group_id, local_date))

    @staticmethod
    async def try_create(
        session: AsyncSession,
        *,
        group_id: int,
        local_date: date,
        started_at: datetime,
    ) -> bool:
        stmt = (
            insert(DistributionRun)
            .values(
                group_id=group_id,
                local_date=local_date,
                status="IN_PROGRESS",
                started_at=started_at,
            )
            .on_conflict_do_nothing(index_elements=[DistributionRun.group_id, DistributionRun.local_date])
            .returning(DistributionRun.group_id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def try_reclaim_failed(
        session: AsyncSession,
        *,
        group_id: int,
        local_date: date,
        started_at: datetime,
    ) -> bool:
        stmt = (
            update(DistributionRun)
            .where(
                DistributionRun.group_id == group_id,
                DistributionRun.local_date == local_date,
                DistributionRun.status == "FAILED",
            )
            .values(status="IN_PROGRESS", started_at=started_at, finished_at=None)
            .returning(DistributionRun.group_id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def finish(
        session: AsyncSession,
        *,
        group_id: int,
        local_date: date,
        status: str,
        finished_at: datetime,
        next_day: int | None = None,
        codes_total: int = 0,
        codes_distributed: int = 0,
        codes_failed: int = 0,
        assignments_created: int = 0,
    ) -> int:
        stmt = (
            update(DistributionRun)
            .where(
                DistributionRun.group_id == group_id,
                DistributionRun.local_date == local_date,
            )
            .values(
                status=status,
                finished_at=finished_at,
                next_day=next_day,
                codes_total=codes_total,
                codes_distributed=codes_distributed,
                codes_failed=codes_failed,
                assignments_created=assignments_created,
            )
        )
        result = await session.execute(stmt)
        return result.rowcount or 0
