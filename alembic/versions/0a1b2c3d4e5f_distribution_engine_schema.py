"""distribution_engine_schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0a1b2c3d4e5f"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "global_settings",
        sa.Column("id", sa.SmallInteger(), primary_key=True),
        sa.Column("daily_view_limit", sa.Integer(), nullable=False),
        sa.Column("distribution_days", sa.Integer(), nullable=False),
        sa.Column("group_size", sa.Integer(), nullable=False),
        sa.Column("send_time", sa.Time(), nullable=False),
        sa.Column("scheduler_active", sa.Boolean(), nullable=False),
        sa.Column("payment_mode_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("id = 1", name="ck_global_settings_singleton"),
        sa.CheckConstraint("daily_view_limit >= 0", name="ck_global_settings_view_limit_non_negative"),
        sa.CheckConstraint("distribution_days >= 1", name="ck_global_settings_days_positive"),
        sa.CheckConstraint("group_size >= 1", name="ck_global_settings_group_size_positive"),
    )

    op.create_table(
        "groups",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("max_members", sa.Integer(), nullable=False),
        sa.Column("daily_view_limit", sa.Integer(), nullable=True),
        sa.Column("distribution_days", sa.Integer(), nullable=True),
        sa.Column("send_time", sa.Time(), nullable=True),
        sa.Column("scheduler_active", sa.Boolean(), nullable=True),
        sa.Column("payment_mode_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("max_members >= 1", name="ck_groups_max_members_positive"),
        sa.CheckConstraint(
            "daily_view_limit IS NULL OR daily_view_limit >= 0",
            name="ck_groups_view_limit_non_negative",
        ),
        sa.CheckConstraint(
            "distribution_days IS NULL OR distribution_days >= 1",
            name="ck_groups_days_positive",
        ),
    )
    op.create_index("idx_groups_created_at", "groups", ["created_at"])

    op.create_table(
        "members",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("telegram_user_id", sa.BigInteger(), nullable=False),
        sa.Column("group_id", sa.BigInteger(), nullable=False),
        sa.Column("display_name", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"]),
        sa.UniqueConstraint("telegram_user_id", name="uq_members_telegram_user_id"),
        sa.UniqueConstraint("group_id", "display_name", name="uq_members_group_display_name"),
    )
    op.create_index("idx_members_group_id", "members", ["group_id"])

    op.create_table(
        "codes",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("owner_id", sa.BigInteger(), nullable=False),
        sa.Column("code_text", sa.Text(), nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("views_per_day", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("distributed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('active','suspended','distributed')", name="ck_codes_status"),
        sa.CheckConstraint("day_number >= 1", name="ck_codes_day_number_positive"),
        sa.CheckConstraint("views_per_day >= 0", name="ck_codes_views_per_day_non_negative"),
        sa.CheckConstraint(
            "(status != 'suspended') OR suspended_at IS NOT NULL",
            name="ck_codes_suspended_at_required",
        ),
        sa.ForeignKeyConstraint(["owner_id"], ["members.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("owner_id", "day_number", name="uq_codes_owner_day"),
    )
    op.create_index("idx_codes_status_day", "codes", ["status", "day_number"])
    op.create_index(
        "idx_codes_suspended_at",
        "codes",
        ["suspended_at"],
        postgresql_where=sa.text("status = 'suspended'"),
    )

    op.create_table(
        "code_assignments",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("code_id", sa.BigInteger(), nullable=False),
        sa.Column("owner_id", sa.BigInteger(), nullable=False),
        sa.Column("viewer_id", sa.BigInteger(), nullable=False),
        sa.Column("assigned_date", sa.Date(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("marked_paused", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("disputed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("carried_over_count", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("owner_id <> viewer_id", name="ck_code_assignments_no_self_view"),
        sa.CheckConstraint("(NOT verified) OR used", name="ck_code_assignments_verified_requires_used"),
        sa.CheckConstraint("carried_over_count >= 0", name="ck_code_assignments_carry_non_negative"),
        sa.ForeignKeyConstraint(["code_id"], ["codes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["owner_id"], ["members.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["viewer_id"], ["members.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("owner_id", "viewer_id", name="uq_code_assignments_owner_viewer"),
    )
    op.create_index("idx_code_assignments_viewer_date", "code_assignments", ["viewer_id", "assigned_date"])
    op.create_index("idx_code_assignments_code_date", "code_assignments", ["code_id", "assigned_date"])
    op.create_index("idx_code_assignments_date_used", "code_assignments", ["assigned_date", "used"])

    op.create_table(
        "penalty_state",
        sa.Column("member_id", sa.BigInteger(), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("miss_streak", sa.Integer(), nullable=False),
        sa.Column("codes_suspended", sa.Boolean(), nullable=False),
        sa.Column("last_miss_date", sa.Date(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("kind IN ('USAGE','CONFIRMATION')", name="ck_penalty_state_kind"),
        sa.CheckConstraint("miss_streak >= 0", name="ck_penalty_state_miss_streak_non_negative"),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("member_id", "kind"),
    )

    op.create_table(
        "distribution_runs",
        sa.Column("group_id", sa.BigInteger(), nullable=False),
        sa.Column("local_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("next_day", sa.Integer(), nullable=True),
        sa.Column("codes_total", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("codes_distributed", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("codes_failed", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("assignments_created", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('IN_PROGRESS','COMPLETED','FAILED')",
            name="ck_distribution_runs_status",
        ),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"]),
        sa.PrimaryKeyConstraint("group_id", "local_date"),
    )
    op.create_index("idx_distribution_runs_local_date", "distribution_runs", ["local_date"])

    op.create_table(
        "job_runs",
        sa.Column("job_name", sa.String(64), nullable=False),
        sa.Column("run_key", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("job_name", "run_key"),
    )


def downgrade() -> None:
    op.drop_table("job_runs")
    op.drop_index("idx_distribution_runs_local_date", table_name="distribution_runs")
    op.drop_table("distribution_runs")
    op.drop_table("penalty_state")
    op.drop_index("idx_code_assignments_date_used", table_name="code_assignments")
    op.drop_index("idx_code_assignments_code_date", table_name="code_assignments")
    op.drop_index("idx_code_assignments_viewer_date", table_name="code_assignments")
    op.drop_table("code_assignments")
    op.drop_index("idx_codes_suspended_at", table_name="codes")
    op.drop_index("idx_codes_status_day", table_name="codes")
    op.drop_table("codes")
    op.drop_index("idx_members_group_id", table_name="members")
    op.drop_table("members")
    op.drop_index("idx_groups_created_at", table_name="groups")
    op.drop_table("groups")
    op.drop_table("global_settings")
