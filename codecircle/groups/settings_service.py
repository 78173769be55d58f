from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.core.config import get_settings
from codecircle.db.models.global_settings import GlobalSettings
from codecircle.db.repo.assignments_repo import AssignmentsRepo
from codecircle.db.repo.codes_repo import CodesRepo
from codecircle.db.repo.groups_repo import GroupsRepo
from codecircle.db.repo.members_repo import MembersRepo
from codecircle.db.repo.settings_repo import GlobalSettingsRepo
from codecircle.groups.errors import GroupNotFoundError, SettingsFieldNotOverridableError
from codecircle.groups.rules import OVERRIDABLE_FIELDS, fallback_snapshot, resolve_group_settings
from codecircle.groups.types import EngineStats, GroupOverview, GroupSettingsSnapshot, SettingsPatch

logger = structlog.get_logger(__name__)


class GroupSettingsService:
    @staticmethod
    async def ensure_global_settings(session: AsyncSession) -> GlobalSettings | None:
        existing = await GlobalSettingsRepo.get(session)
        if existing is not None:
            return existing

        defaults = fallback_snapshot(get_settings())
        created = await GlobalSettingsRepo.create_default_once(
            session,
            daily_view_limit=defaults.daily_view_limit,
            distribution_days=defaults.distribution_days,
            group_size=defaults.max_members,
            send_time=defaults.send_time,
            scheduler_active=defaults.scheduler_active,
        )
        if created:
            logger.info("global_settings_initialized")
        return await GlobalSettingsRepo.get(session)

    @staticmethod
    async def get_global_settings(session: AsyncSession) -> GroupSettingsSnapshot:
        global_row = await GroupSettingsService.ensure_global_settings(session)
        return resolve_group_settings(group=None, global_row=global_row, defaults=get_settings())

    @staticmethod
    async def get_group_settings(session: AsyncSession, *, group_id: int) -> GroupSettingsSnapshot:
        """Resolved settings of one group; a missing group row falls back to the global defaults."""
        global_row = await GroupSettingsService.ensure_global_settings(session)
        group = await GroupsRepo.get_by_id(session, group_id)
        if group is None:
            logger.warning("group_settings_group_missing", group_id=group_id)
        return resolve_group_settings(group=group, global_row=global_row, defaults=get_settings())

    @staticmethod
    async def list_group_settings(session: AsyncSession) -> list[GroupSettingsSnapshot]:
        global_row = await GroupSettingsService.ensure_global_settings(session)
        settings = get_settings()
        groups = await GroupsRepo.list_all(session)
        return [
            resolve_group_settings(group=group, global_row=global_row, defaults=settings)
            for group in groups
        ]

    @staticmethod
    async def apply_global_patch(
        session: AsyncSession,
        *,
        patch: SettingsPatch,
        now_utc: datetime,
    ) -> GroupSettingsSnapshot:
        await GroupSettingsService.ensure_global_settings(session)
        values = patch.changed_values()
        max_members = values.pop("max_members", None)
        if max_members is not None:
            values["group_size"] = max_members
            # group size applies to every existing group as well
            await GroupsRepo.set_max_members_for_all(session, max_members=int(max_members))
        await GlobalSettingsRepo.update_values(session, values=values, now_utc=now_utc)
        logger.info("global_settings_updated", fields=sorted(values))
        return await GroupSettingsService.get_global_settings(session)

    @staticmethod
    async def apply_group_patch(
        session: AsyncSession,
        *,
        group_id: int,
        patch: SettingsPatch,
    ) -> GroupSettingsSnapshot:
        group = await GroupsRepo.get_by_id(session, group_id)
        if group is None:
            raise GroupNotFoundError

        unknown = set(patch.clear_fields) - OVERRIDABLE_FIELDS
        if unknown:
            raise SettingsFieldNotOverridableError(sorted(unknown))

        values = patch.changed_values()
        for field_name in patch.clear_fields:
            values[field_name] = None
        await GroupsRepo.update_overrides(session, group_id=group_id, values=values)
        await session.refresh(group)
        logger.info("group_settings_updated", group_id=group_id, fields=sorted(values))
        return await GroupSettingsService.get_group_settings(session, group_id=group_id)

    @staticmethod
    async def list_group_overviews(session: AsyncSession) -> list[GroupOverview]:
        overviews: list[GroupOverview] = []
        for snapshot in await GroupSettingsService.list_group_settings(session):
            if snapshot.group_id is None:
                continue
            group = await GroupsRepo.get_by_id(session, snapshot.group_id)
            overviews.append(
                GroupOverview(
                    group_id=snapshot.group_id,
                    name=group.name if group is not None else "",
                    members_total=await MembersRepo.count_for_group(session, group_id=snapshot.group_id),
                    settings=snapshot,
                )
            )
        return overviews

    @staticmethod
    async def collect_stats(session: AsyncSession) -> EngineStats:
        return EngineStats(
            members_total=await MembersRepo.count_all(session),
            groups_total=await GroupsRepo.count_all(session),
            codes_total=await CodesRepo.count_all(session),
            assignments_total=await AssignmentsRepo.count_all(session),
            global_settings=await GroupSettingsService.get_global_settings(session),
        )
