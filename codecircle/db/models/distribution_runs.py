from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from codecircle.db.models.base import Base


class DistributionRun(Base):
    __tablename__ = "distribution_runs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('IN_PROGRESS','COMPLETED','FAILED')",
            name="ck_distribution_runs_status",
        ),
        Index("idx_distribution_runs_local_date", "local_date"),
    )

    group_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("groups.id"), primary_key=True)
    local_date: Mapped[date] = mapped_column(Date, primary_key=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    next_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    codes_total: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    codes_distributed: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    codes_failed: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    assignments_created: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
