from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from codecircle.db.models.base import Base


class Code(Base):
    __tablename__ = "codes"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active','suspended','distributed')",
            name="ck_codes_status",
        ),
        CheckConstraint("day_number >= 1", name="ck_codes_day_number_positive"),
        CheckConstraint("views_per_day >= 0", name="ck_codes_views_per_day_non_negative"),
        CheckConstraint(
            "(status != 'suspended') OR suspended_at IS NOT NULL",
            name="ck_codes_suspended_at_required",
        ),
        UniqueConstraint("owner_id", "day_number", name="uq_codes_owner_day"),
        Index("idx_codes_status_day", "status", "day_number"),
        Index("idx_codes_suspended_at", "suspended_at", postgresql_where=text("status = 'suspended'")),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    owner_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    code_text: Mapped[str] = mapped_column(Text, nullable=False)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    views_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    suspended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    distributed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
