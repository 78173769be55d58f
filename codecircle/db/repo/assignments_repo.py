from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.models.code_assignments import CodeAssignment
from codecircle.db.models.codes import Code
from codecircle.db.models.members import Member


class AssignmentsRepo:
    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, assignment_id: int) -> CodeAssignment | None:
        stmt = select(CodeAssignment).where(CodeAssignment.id == assignment_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_viewer_ids_for_owner(session: AsyncSession, *, owner_id: int) -> set[int]:
        stmt = select(CodeAssignment.viewer_id).where(CodeAssignment.owner_id == owner_id)
        result = await session.execute(stmt)
        return {int(viewer_id) for viewer_id in result.scalars().all()}

    @staticmethod
    async def insert_once(
        session: AsyncSession,
        *,
        code_id: int,
        owner_id: int,
        viewer_id: int,
        assigned_date: date,
    ) -> bool:
        stmt = (
            insert(CodeAssignment)
            .values(
                code_id=code_id,
                owner_id=owner_id,
                viewer_id=viewer_id,
                assigned_date=assigned_date,
                used=False,
                verified=False,
                marked_paused=False,
                disputed=False,
                carried_over_count=0,
            )
            .on_conflict_do_nothing(index_elements=[CodeAssignment.owner_id, CodeAssignment.viewer_id])
            .returning(CodeAssignment.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def count_for_code_date(session: AsyncSession, *, code_id: int, assigned_date: date) -> int:
        stmt = select(func.count(CodeAssignment.id)).where(
            CodeAssignment.code_id == code_id,
            CodeAssignment.assigned_date == assigned_date,
        )
        total = await session.scalar(stmt)
        return int(total or 0)

    @staticmethod
    async def list_for_viewer_date(
        session: AsyncSession,
        *,
        viewer_id: int,
        assigned_date: date,
        used: bool | None = None,
    ) -> list[tuple[CodeAssignment, str]]:
        stmt = (
            select(CodeAssignment, Code.code_text)
            .join(Code, Code.id == CodeAssignment.code_id)
            .where(
                CodeAssignment.viewer_id == viewer_id,
                CodeAssignment.assigned_date == assigned_date,
            )
            .order_by(CodeAssignment.id.asc())
        )
        if used is not None:
            stmt = stmt.where(CodeAssignment.used.is_(used))
        result = await session.execute(stmt)
        return [(assignment, str(code_text)) for assignment, code_text in result.all()]

    @staticmethod
    async def has_any_for_viewer_date(session: AsyncSession, *, viewer_id: int, assigned_date: date) -> bool:
        stmt = (
            select(CodeAssignment.id)
            .where(
                CodeAssignment.viewer_id == viewer_id,
                CodeAssignment.assigned_date == assigned_date,
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_unused_for_date(session: AsyncSession, *, assigned_date: date) -> dict[int, list[int]]:
        """Maps viewer id to the ids of its unused, non-paused assignments of the date."""
        stmt = (
            select(CodeAssignment.viewer_id, CodeAssignment.id)
            .where(
                CodeAssignment.assigned_date == assigned_date,
                CodeAssignment.used.is_(False),
                CodeAssignment.marked_paused.is_(False),
            )
            .order_by(CodeAssignment.viewer_id.asc(), CodeAssignment.id.asc())
        )
        result = await session.execute(stmt)
        by_viewer: dict[int, list[int]] = {}
        for viewer_id, assignment_id in result.all():
            by_viewer.setdefault(int(viewer_id), []).append(int(assignment_id))
        return by_viewer

    @staticmethod
    async def list_unconfirmed_owner_ids(session: AsyncSession, *, assigned_date: date) -> list[int]:
        stmt = (
            select(CodeAssignment.owner_id)
            .where(
                CodeAssignment.assigned_date == assigned_date,
                CodeAssignment.used.is_(True),
                CodeAssignment.verified.is_(False),
            )
            .distinct()
            .order_by(CodeAssignment.owner_id.asc())
        )
        result = await session.execute(stmt)
        return [int(owner_id) for owner_id in result.scalars().all()]

    @staticmethod
    async def list_paused_viewer_ids(
        session: AsyncSession,
        *,
        group_id: int,
        assigned_date: date,
    ) -> set[int]:
        stmt = (
            select(CodeAssignment.viewer_id)
            .join(Member, Member.id == CodeAssignment.viewer_id)
            .where(
                Member.group_id == group_id,
                CodeAssignment.assigned_date == assigned_date,
                CodeAssignment.marked_paused.is_(True),
            )
            .distinct()
        )
        result = await session.execute(stmt)
        return {int(viewer_id) for viewer_id in result.scalars().all()}

    @staticmethod
    async def carry_forward(
        session: AsyncSession,
        *,
        assignment_ids: Sequence[int],
        to_date: date,
    ) -> int:
        ids = tuple({int(assignment_id) for assignment_id in assignment_ids})
        if not ids:
            return 0
        stmt = (
            update(CodeAssignment)
            .where(CodeAssignment.id.in_(ids), CodeAssignment.used.is_(False))
            .values(
                assigned_date=to_date,
                carried_over_count=CodeAssignment.carried_over_count + 1,
            )
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def set_used(session: AsyncSession, *, assignment_id: int, used_at: datetime) -> int:
        stmt = (
            update(CodeAssignment)
            .where(CodeAssignment.id == assignment_id)
            .values(used=True, used_at=used_at, disputed=False, marked_paused=False)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def set_paused(session: AsyncSession, *, assignment_id: int) -> int:
        stmt = update(CodeAssignment).where(CodeAssignment.id == assignment_id).values(marked_paused=True)
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def set_verified(session: AsyncSession, *, assignment_id: int, verified_at: datetime) -> int:
        stmt = (
            update(CodeAssignment)
            .where(CodeAssignment.id == assignment_id, CodeAssignment.used.is_(True))
            .values(verified=True, verified_at=verified_at)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def set_disputed(session: AsyncSession, *, assignment_id: int) -> int:
        stmt = (
            update(CodeAssignment)
            .where(CodeAssignment.id == assignment_id, CodeAssignment.verified.is_(False))
            .values(used=False, used_at=None, disputed=True)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def count_all(session: AsyncSession) -> int:
        total = await session.scalar(select(func.count(CodeAssignment.id)))
        return int(total or 0)

    @staticmethod
    async def count_referencing_member(session: AsyncSession, *, member_id: int) -> int:
        stmt = select(func.count(CodeAssignment.id)).where(
            or_(CodeAssignment.owner_id == member_id, CodeAssignment.viewer_id == member_id)
        )
        total = await session.scalar(stmt)
        return int(total or 0)

    @staticmethod
    async def delete_referencing_member(session: AsyncSession, *, member_id: int) -> int:
        stmt = delete(CodeAssignment).where(
            or_(CodeAssignment.owner_id == member_id, CodeAssignment.viewer_id == member_id)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    async def delete_all(session: AsyncSession) -> int:
        result = await session.execute(delete(CodeAssignment))
        return result.rowcount or 0
