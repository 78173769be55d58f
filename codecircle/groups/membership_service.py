from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.models.members import Member
from codecircle.db.repo.groups_repo import GroupsRepo
from codecircle.db.repo.members_repo import MembersRepo
from codecircle.groups.errors import (
    DisplayNameUnavailableError,
    MemberAlreadyRegisteredError,
    MemberNotFoundError,
)
from codecircle.groups.rules import next_display_name
from codecircle.groups.settings_service import GroupSettingsService

logger = structlog.get_logger(__name__)

DISPLAY_NAME_ATTEMPTS = 50


class MembershipService:
    @staticmethod
    async def _assign_group_id(session: AsyncSession, *, now_utc: datetime) -> int:
        group = await GroupsRepo.find_with_capacity_for_update(session)
        if group is not None:
            return group.id

        global_settings = await GroupSettingsService.get_global_settings(session)
        created = await GroupsRepo.create(
            session,
            name=f"Group-{int(now_utc.timestamp() * 1000)}",
            max_members=global_settings.max_members,
        )
        logger.info("group_created", group_id=created.id, max_members=created.max_members)
        return created.id

    @staticmethod
    async def _free_display_name(session: AsyncSession, *, group_id: int) -> str:
        members_total = await MembersRepo.count_for_group(session, group_id=group_id)
        for offset in range(DISPLAY_NAME_ATTEMPTS):
            candidate = next_display_name(members_total + offset)
            taken = await MembersRepo.display_name_taken(
                session,
                group_id=group_id,
                display_name=candidate,
            )
            if not taken:
                return candidate
        raise DisplayNameUnavailableError

    @staticmethod
    async def register_member(
        session: AsyncSession,
        *,
        telegram_user_id: int,
        now_utc: datetime,
    ) -> Member:
        existing = await MembersRepo.get_by_telegram_user_id(session, telegram_user_id)
        if existing is not None:
            raise MemberAlreadyRegisteredError

        group_id = await MembershipService._assign_group_id(session, now_utc=now_utc)
        display_name = await MembershipService._free_display_name(session, group_id=group_id)
        member = await MembersRepo.create(
            session,
            telegram_user_id=telegram_user_id,
            group_id=group_id,
            display_name=display_name,
        )
        logger.info(
            "member_registered",
            member_id=member.id,
            group_id=group_id,
            display_name=display_name,
        )
        return member

    @staticmethod
    async def get_member(session: AsyncSession, *, member_id: int) -> Member:
        member = await MembersRepo.get_by_id(session, member_id)
        if member is None:
            raise MemberNotFoundError
        return member

    @staticmethod
    async def members_of_group(
        session: AsyncSession,
        *,
        group_id: int,
        excluding_member_id: int | None = None,
    ) -> list[int]:
        return await MembersRepo.list_member_ids_for_group(
            session,
            group_id=group_id,
            exclude_member_id=excluding_member_id,
        )
