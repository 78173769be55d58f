from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.models.groups import Group
from codecircle.db.models.members import Member


class GroupsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, group_id: int) -> Group | None:
        return await session.get(Group, group_id)

    @staticmethod
    async def list_all(session: AsyncSession) -> list[Group]:
        stmt = select(Group).order_by(Group.id.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def find_with_capacity_for_update(session: AsyncSession) -> Group | None:
        members_count = (
            select(func.count(Member.id))
            .where(Member.group_id == Group.id)
            .correlate(Group)
            .scalar_subquery()
        )
        stmt = (
            select(Group)
            .where(members_count < Group.max_members)
            .order_by(Group.created_at.asc(), Group.id.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, name: str, max_members: int) -> Group:
        group = Group(name=name, max_members=max_members)
        session.add(group)
        await session.flush()
        return group

    @staticmethod
    async def update_overrides(
        session: AsyncSession,
        *,
        group_id: int,
        values: dict[str, object],
    ) -> int:
        if not values:
            return 0
        stmt = update(Group).where(Group.id == group_id).values(**values)
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def set_max_members_for_all(session: AsyncSession, *, max_members: int) -> int:
        stmt = update(Group).values(max_members=max_members)
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def count_all(session: AsyncSession) -> int:
        total = await session.scalar(select(func.count(Group.id)))
        return int(total or 0)
