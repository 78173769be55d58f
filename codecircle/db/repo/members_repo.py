from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.models.members import Member


class MembersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, member_id: int) -> Member | None:
        return await session.get(Member, member_id)

    @staticmethod
    async def get_by_telegram_user_id(session: AsyncSession, telegram_user_id: int) -> Member | None:
        stmt = select(Member).where(Member.telegram_user_id == telegram_user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_telegram_ids(session: AsyncSession, member_ids: list[int]) -> dict[int, int]:
        ids = tuple({int(member_id) for member_id in member_ids})
        if not ids:
            return {}
        stmt = select(Member.id, Member.telegram_user_id).where(Member.id.in_(ids))
        result = await session.execute(stmt)
        return {int(member_id): int(telegram_user_id) for member_id, telegram_user_id in result.all()}

    @staticmethod
    async def list_member_ids_for_group(
        session: AsyncSession,
        *,
        group_id: int,
        exclude_member_id: int | None = None,
    ) -> list[int]:
        stmt = select(Member.id).where(Member.group_id == group_id).order_by(Member.id.asc())
        if exclude_member_id is not None:
            stmt = stmt.where(Member.id != exclude_member_id)
        result = await session.execute(stmt)
        return [int(member_id) for member_id in result.scalars().all()]

    @staticmethod
    async def count_for_group(session: AsyncSession, *, group_id: int) -> int:
        total = await session.scalar(select(func.count(Member.id)).where(Member.group_id == group_id))
        return int(total or 0)

    @staticmethod
    async def count_all(session: AsyncSession) -> int:
        total = await session.scalar(select(func.count(Member.id)))
        return int(total or 0)

    @staticmethod
    async def display_name_taken(session: AsyncSession, *, group_id: int, display_name: str) -> bool:
        stmt = select(Member.id).where(
            Member.group_id == group_id,
            Member.display_name == display_name,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        telegram_user_id: int,
        group_id: int,
        display_name: str,
    ) -> Member:
        member = Member(
            telegram_user_id=telegram_user_id,
            group_id=group_id,
            display_name=display_name,
        )
        session.add(member)
        await session.flush()
        return member

    @staticmethod
    async def delete_by_id(session: AsyncSession, member_id: int) -> int:
        result = await session.execute(delete(Member).where(Member.id == member_id))
        return result.rowcount or 0

    @staticmethod
    async def exists_by_id(session: AsyncSession, member_id: int) -> bool:
        stmt = select(Member.id).where(Member.id == member_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
