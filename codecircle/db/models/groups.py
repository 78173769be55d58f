from __future__ import annotations

from datetime import datetime, time

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, Index, Integer, Text, Time, text
from sqlalchemy.orm import Mapped, mapped_column

from codecircle.db.models.base import Base


class Group(Base):
    __tablename__ = "groups"
    __table_args__ = (
        CheckConstraint("max_members >= 1", name="ck_groups_max_members_positive"),
        CheckConstraint(
            "daily_view_limit IS NULL OR daily_view_limit >= 0",
            name="ck_groups_view_limit_non_negative",
        ),
        CheckConstraint(
            "distribution_days IS NULL OR distribution_days >= 1",
            name="ck_groups_days_positive",
        ),
        Index("idx_groups_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    max_members: Mapped[int] = mapped_column(Integer, nullable=False)
    # NULL means "inherit from global_settings"
    daily_view_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    distribution_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    send_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    scheduler_active: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    payment_mode_active: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
