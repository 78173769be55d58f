from __future__ import annotations

from datetime import date, time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from codecircle.api.routes import internal_distribution
from codecircle.codes.types import CycleResetResult
from codecircle.distribution.types import GroupDistributionResult, GroupRunOutcome
from codecircle.groups.errors import SettingsFieldNotOverridableError
from codecircle.groups.types import EngineStats, GroupOverview, GroupSettingsSnapshot
from codecircle.main import app
from tests.engine.fake_store import FakeSessionLocal

TOKEN_HEADERS = {"X-Internal-Token": "internal-secret"}


def _snapshot(group_id: int | None = None, **overrides) -> GroupSettingsSnapshot:
    values = {
        "group_id": group_id,
        "max_members": 1000,
        "daily_view_limit": 50,
        "distribution_days": 20,
        "send_time": time(9, 0),
        "scheduler_active": True,
        "payment_mode_active": False,
    }
    values.update(overrides)
    return GroupSettingsSnapshot(**values)


@pytest.fixture
def internal_client(monkeypatch) -> TestClient:
    monkeypatch.setattr(
        internal_distribution,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token="internal-secret",
            internal_api_allowlist="127.0.0.1/32",
        ),
    )
    monkeypatch.setattr(internal_distribution, "SessionLocal", FakeSessionLocal())
    return TestClient(app, client=("127.0.0.1", 5100))


def test_internal_distribution_rejects_missing_token(internal_client) -> None:
    response = internal_client.get("/internal/distribution/settings")

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_distribution_rejects_disallowed_ip(monkeypatch) -> None:
    monkeypatch.setattr(
        internal_distribution,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token="internal-secret",
            internal_api_allowlist="192.168.0.0/16",
        ),
    )

    client = TestClient(app, client=("10.0.0.25", 5101))
    response = client.post("/internal/distribution/cycle/reset", headers=TOKEN_HEADERS)

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_get_global_settings_formats_send_time(monkeypatch, internal_client) -> None:
    async def _global(session):
        return _snapshot(send_time=time(7, 5), scheduler_active=False)

    monkeypatch.setattr(internal_distribution.GroupSettingsService, "get_global_settings", _global)

    response = internal_client.get("/internal/distribution/settings", headers=TOKEN_HEADERS)

    assert response.status_code == 200
    payload = response.json()
    assert payload["send_time"] == "07:05"
    assert payload["distribution_eligible"] is False


def test_patch_global_settings_validates_and_forwards_patch(monkeypatch, internal_client) -> None:
    patches = []

    async def _apply(session, *, patch, now_utc):
        patches.append(patch)
        return _snapshot(daily_view_limit=patch.daily_view_limit, send_time=patch.send_time)

    monkeypatch.setattr(internal_distribution.GroupSettingsService, "apply_global_patch", _apply)

    response = internal_client.patch(
        "/internal/distribution/settings",
        json={"daily_view_limit": 25, "send_time": "18:30"},
        headers=TOKEN_HEADERS,
    )
    rejected = internal_client.patch(
        "/internal/distribution/settings",
        json={"send_time": "25 o'clock"},
        headers=TOKEN_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["send_time"] == "18:30"
    assert patches[0].daily_view_limit == 25
    assert patches[0].send_time == time(18, 30)
    assert rejected.status_code == 422


def test_group_settings_for_unknown_group_returns_404(monkeypatch, internal_client) -> None:
    async def _get_group(session, group_id: int):
        return None

    monkeypatch.setattr(internal_distribution.GroupsRepo, "get_by_id", _get_group)

    response = internal_client.get("/internal/distribution/groups/44/settings", headers=TOKEN_HEADERS)

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "E_GROUP_NOT_FOUND"}}


def test_group_patch_with_unknown_clear_field_returns_422(monkeypatch, internal_client) -> None:
    async def _apply(session, *, group_id: int, patch):
        raise SettingsFieldNotOverridableError(["max_members"])

    monkeypatch.setattr(internal_distribution.GroupSettingsService, "apply_group_patch", _apply)

    response = internal_client.patch(
        "/internal/distribution/groups/3/settings",
        json={"clear_fields": ["max_members"]},
        headers=TOKEN_HEADERS,
    )

    assert response.status_code == 422
    assert response.json() == {"detail": {"code": "E_SETTINGS_FIELD_INVALID"}}


def test_manual_group_run_returns_result(monkeypatch, internal_client) -> None:
    calls = []

    async def _run_for_group(*, group_id: int, now_utc, notifier):
        calls.append(group_id)
        return GroupDistributionResult(
            group_id=group_id,
            local_date=date(2026, 3, 10),
            outcome=GroupRunOutcome.ALREADY_RAN,
        )

    monkeypatch.setattr(internal_distribution.DistributionService, "run_for_group", _run_for_group)
    monkeypatch.setattr(internal_distribution, "TelegramNotifier", lambda: object())

    response = internal_client.post("/internal/distribution/groups/7/run", headers=TOKEN_HEADERS)

    assert response.status_code == 200
    assert calls == [7]
    assert response.json()["outcome"] == "ALREADY_RAN"
    assert response.json()["local_date"] == "2026-03-10"


def test_manual_cycle_reset(monkeypatch, internal_client) -> None:
    async def _reset(session):
        return CycleResetResult(assignments_deleted=120, codes_deleted=40)

    monkeypatch.setattr(internal_distribution.CodeLedgerService, "reset_cycle", _reset)

    response = internal_client.post("/internal/distribution/cycle/reset", headers=TOKEN_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"assignments_deleted": 120, "codes_deleted": 40}


def test_stats_lists_groups(monkeypatch, internal_client) -> None:
    async def _stats(session):
        return EngineStats(
            members_total=12,
            groups_total=1,
            codes_total=30,
            assignments_total=90,
            global_settings=_snapshot(),
        )

    async def _overviews(session):
        return [GroupOverview(group_id=1, name="Group-1", members_total=12, settings=_snapshot(1))]

    monkeypatch.setattr(internal_distribution.GroupSettingsService, "collect_stats", _stats)
    monkeypatch.setattr(internal_distribution.GroupSettingsService, "list_group_overviews", _overviews)

    response = internal_client.get("/internal/distribution/stats", headers=TOKEN_HEADERS)

    assert response.status_code == 200
    payload = response.json()
    assert payload["members_total"] == 12
    assert payload["groups"][0]["settings"]["group_id"] == 1
