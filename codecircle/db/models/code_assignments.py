from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    SmallInteger,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from codecircle.db.models.base import Base


class CodeAssignment(Base):
    __tablename__ = "code_assignments"
    __table_args__ = (
        CheckConstraint("owner_id <> viewer_id", name="ck_code_assignments_no_self_view"),
        CheckConstraint(
            "(NOT verified) OR used",
            name="ck_code_assignments_verified_requires_used",
        ),
        CheckConstraint("carried_over_count >= 0", name="ck_code_assignments_carry_non_negative"),
        # anti-repeat: a viewer sees at most one code of any given owner, ever
        UniqueConstraint("owner_id", "viewer_id", name="uq_code_assignments_owner_viewer"),
        Index("idx_code_assignments_viewer_date", "viewer_id", "assigned_date"),
        Index("idx_code_assignments_code_date", "code_id", "assigned_date"),
        Index("idx_code_assignments_date_used", "assigned_date", "used"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    code_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("codes.id", ondelete="CASCADE"),
        nullable=False,
    )
    owner_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    viewer_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_date: Mapped[date] = mapped_column(Date, nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    marked_paused: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    disputed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    carried_over_count: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        server_default=text("0"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
