from __future__ import annotations

from datetime import datetime, time

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from codecircle.db.models.global_settings import GlobalSettings

GLOBAL_SETTINGS_ID = 1


class GlobalSettingsRepo:
    @staticmethod
    async def get(session: AsyncSession) -> GlobalSettings | None:
        return await session.get(GlobalSettings, GLOBAL_SETTINGS_ID)

    @staticmethod
    async def create_default_once(
        session: AsyncSession,
        *,
        daily_view_limit: int,
        distribution_days: int,
        group_size: int,
        send_time: time,
        scheduler_active: bool,
    ) -> bool:
        stmt = (
            insert(GlobalSettings)
            .values(
                id=GLOBAL_SETTINGS_ID,
                daily_view_limit=daily_view_limit,
                distribution_days=distribution_days,
                group_size=group_size,
                send_time=send_time,
                scheduler_active=scheduler_active,
                payment_mode_active=False,
                updated_at=func.now(),
            )
            .on_conflict_do_nothing(index_elements=[GlobalSettings.id])
            .returning(GlobalSettings.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def get_for_update(session: AsyncSession) -> GlobalSettings | None:
        stmt = select(GlobalSettings).where(GlobalSettings.id == GLOBAL_SETTINGS_ID).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def update_values(
        session: AsyncSession,
        *,
        values: dict[str, object],
        now_utc: datetime,
    ) -> int:
        if not values:
            return 0
        stmt = (
            update(GlobalSettings)
            .where(GlobalSettings.id == GLOBAL_SETTINGS_ID)
            .values(**values, updated_at=now_utc)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0
