from __future__ import annotations

from datetime import datetime, time

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, SmallInteger, Time, text
from sqlalchemy.orm import Mapped, mapped_column

from codecircle.db.models.base import Base


class GlobalSettings(Base):
    __tablename__ = "global_settings"
    __table_args__ = (
        CheckConstraint("id = 1", name="ck_global_settings_singleton"),
        CheckConstraint("daily_view_limit >= 0", name="ck_global_settings_view_limit_non_negative"),
        CheckConstraint("distribution_days >= 1", name="ck_global_settings_days_positive"),
        CheckConstraint("group_size >= 1", name="ck_global_settings_group_size_positive"),
    )

    id: Mapped[int] = mapped_column(SmallInteger, primary_key=True)
    daily_view_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    distribution_days: Mapped[int] = mapped_column(Integer, nullable=False)
    group_size: Mapped[int] = mapped_column(Integer, nullable=False)
    send_time: Mapped[time] = mapped_column(Time, nullable=False)
    scheduler_active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    payment_mode_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
