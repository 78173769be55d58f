from __future__ import annotations

from sqlalchemy import CheckConstraint, UniqueConstraint

from codecircle.db.models import (  # noqa: F401
    Code,
    CodeAssignment,
    DistributionRun,
    GlobalSettings,
    Group,
    JobRun,
    Member,
    PenaltyState,
)
from codecircle.db.models.base import Base


def _names(table_name: str, kind: type) -> set[str]:
    table = Base.metadata.tables[table_name]
    return {constraint.name for constraint in table.constraints if isinstance(constraint, kind)}


def test_all_engine_tables_registered() -> None:
    expected_tables = {
        "global_settings",
        "groups",
        "members",
        "codes",
        "code_assignments",
        "penalty_state",
        "distribution_runs",
        "job_runs",
    }
    assert expected_tables == set(Base.metadata.tables)


def test_assignment_pair_is_unique_and_never_self() -> None:
    assert "uq_code_assignments_owner_viewer" in _names("code_assignments", UniqueConstraint)
    checks = _names("code_assignments", CheckConstraint)
    assert "ck_code_assignments_no_self_view" in checks
    assert "ck_code_assignments_verified_requires_used" in checks

    indexes = {index.name for index in Base.metadata.tables["code_assignments"].indexes}
    assert {
        "idx_code_assignments_viewer_date",
        "idx_code_assignments_code_date",
        "idx_code_assignments_date_used",
    } <= indexes


def test_codes_and_members_constraints_present() -> None:
    assert "uq_codes_owner_day" in _names("codes", UniqueConstraint)
    assert "ck_codes_status" in _names("codes", CheckConstraint)
    assert "ck_codes_suspended_at_required" in _names("codes", CheckConstraint)

    member_uniques = _names("members", UniqueConstraint)
    assert "uq_members_telegram_user_id" in member_uniques
    assert "uq_members_group_display_name" in member_uniques


def test_once_only_tables_use_composite_keys() -> None:
    runs_pk = [column.name for column in Base.metadata.tables["distribution_runs"].primary_key.columns]
    jobs_pk = [column.name for column in Base.metadata.tables["job_runs"].primary_key.columns]
    penalty_pk = [column.name for column in Base.metadata.tables["penalty_state"].primary_key.columns]

    assert runs_pk == ["group_id", "local_date"]
    assert jobs_pk == ["job_name", "run_key"]
    assert penalty_pk == ["member_id", "kind"]
    assert "ck_global_settings_singleton" in _names("global_settings", CheckConstraint)
