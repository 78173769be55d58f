from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import case, delete, exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.models.code_assignments import CodeAssignment
from codecircle.db.models.codes import Code
from codecircle.db.models.members import Member


class CodesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, code_id: int) -> Code | None:
        return await session.get(Code, code_id)

    @staticmethod
    async def create_batch(
        session: AsyncSession,
        *,
        owner_id: int,
        code_texts: Sequence[str],
        views_per_day: int,
    ) -> list[Code]:
        codes = [
            Code(
                owner_id=owner_id,
                code_text=code_text,
                day_number=day_number,
                views_per_day=views_per_day,
                status="active",
            )
            for day_number, code_text in enumerate(code_texts, start=1)
        ]
        session.add_all(codes)
        await session.flush()
        return codes

    @staticmethod
    async def has_codes_for_owner(session: AsyncSession, *, owner_id: int) -> bool:
        stmt = select(Code.id).where(Code.owner_id == owner_id).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_for_owner(session: AsyncSession, *, owner_id: int) -> list[Code]:
        stmt = select(Code).where(Code.owner_id == owner_id).order_by(Code.day_number.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_owner_progress(session: AsyncSession, *, group_id: int) -> list[tuple[int, int]]:
        """Returns ``(owner_id, last_done_day)`` for every code owner of the group.

        A day counts as done once its code was distributed or has any assignment row.
        """
        has_assignment = exists().where(CodeAssignment.code_id == Code.id)
        done_day = case(
            (or_(Code.status == "distributed", has_assignment), Code.day_number),
            else_=None,
        )
        stmt = (
            select(Code.owner_id, func.coalesce(func.max(done_day), 0))
            .join(Member, Member.id == Code.owner_id)
            .where(Member.group_id == group_id)
            .group_by(Code.owner_id)
            .order_by(Code.owner_id.asc())
        )
        result = await session.execute(stmt)
        return [(int(owner_id), int(last_done_day)) for owner_id, last_done_day in result.all()]

    @staticmethod
    async def list_active_for_day(
        session: AsyncSession,
        *,
        group_id: int,
        day_number: int,
    ) -> list[Code]:
        stmt = (
            select(Code)
            .join(Member, Member.id == Code.owner_id)
            .where(
                Member.group_id == group_id,
                Code.day_number == day_number,
                Code.status == "active",
            )
            .order_by(Code.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def mark_distributed(session: AsyncSession, *, code_id: int, now_utc: datetime) -> int:
        stmt = (
            update(Code)
            .where(Code.id == code_id, Code.status == "active")
            .values(status="distributed", distributed_at=now_utc)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def suspend_active_for_owner(
        session: AsyncSession,
        *,
        owner_id: int,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(Code)
            .where(Code.owner_id == owner_id, Code.status == "active")
            .values(status="suspended", suspended_at=now_utc)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def reactivate_suspended_before(
        session: AsyncSession,
        *,
        cutoff_utc: datetime,
    ) -> list[int]:
        """Reactivates codes whose suspension started at or before the cutoff; returns owner ids."""
        stmt = (
            update(Code)
            .where(Code.status == "suspended", Code.suspended_at <= cutoff_utc)
            .values(status="active", suspended_at=None)
            .returning(Code.owner_id)
        )
        result = await session.execute(stmt)
        return sorted({int(owner_id) for owner_id in result.scalars().all()})

    @staticmethod
    async def count_all(session: AsyncSession) -> int:
        total = await session.scalar(select(func.count(Code.id)))
        return int(total or 0)

    @staticmethod
    async def count_for_owner(session: AsyncSession, *, owner_id: int) -> int:
        total = await session.scalar(select(func.count(Code.id)).where(Code.owner_id == owner_id))
        return int(total or 0)

    @staticmethod
    async def delete_for_owner(session: AsyncSession, *, owner_id: int) -> int:
        result = await session.execute(delete(Code).where(Code.owner_id == owner_id))
        return result.rowcount or 0

    @staticmethod
    async def delete_all(session: AsyncSession) -> int:
        result = await session.execute(delete(Code))
        return result.rowcount or 0
