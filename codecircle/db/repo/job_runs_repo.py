from __future__ import annotations

from datetime import datetime

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.models.job_runs import JobRun


class JobRunsRepo:
    @staticmethod
    async def create_once(
        session: AsyncSession,
        *,
        job_name: str,
        run_key: str,
        created_at: datetime,
    ) -> bool:
        stmt = (
            insert(JobRun)
            .values(job_name=job_name, run_key=run_key, created_at=created_at)
            .on_conflict_do_nothing(index_elements=[JobRun.job_name, JobRun.run_key])
            .returning(JobRun.job_name)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
