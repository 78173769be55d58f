from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from codecircle.db.models.base import Base


class PenaltyState(Base):
    __tablename__ = "penalty_state"
    __table_args__ = (
        CheckConstraint("kind IN ('USAGE','CONFIRMATION')", name="ck_penalty_state_kind"),
        CheckConstraint("miss_streak >= 0", name="ck_penalty_state_miss_streak_non_negative"),
    )

    member_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("members.id", ondelete="CASCADE"),
        primary_key=True,
    )
    kind: Mapped[str] = mapped_column(String(16), primary_key=True)
    miss_streak: Mapped[int] = mapped_column(Integer, nullable=False)
    codes_suspended: Mapped[bool] = mapped_column(Boolean, nullable=False)
    last_miss_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
