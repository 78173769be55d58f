from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Request

from codecircle.api.routes.internal_distribution_models import (
    CycleResetResponse,
    DistributionRunResponse,
    GroupOverviewResponse,
    GroupSettingsUpdateRequest,
    SettingsResponse,
    SettingsUpdateRequest,
    StatsResponse,
)
from codecircle.codes.service import CodeLedgerService
from codecircle.core.config import get_settings
from codecircle.db.repo.groups_repo import GroupsRepo
from codecircle.db.session import SessionLocal
from codecircle.distribution.service import DistributionService
from codecircle.groups.errors import GroupNotFoundError, SettingsFieldNotOverridableError
from codecircle.groups.settings_service import GroupSettingsService
from codecircle.groups.types import GroupSettingsSnapshot, SettingsPatch
from codecircle.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
)
from codecircle.services.notifications import TelegramNotifier

router = APIRouter(tags=["internal", "distribution"])
logger = structlog.get_logger(__name__)


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )
    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_distribution_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_internal_request_authenticated(request, expected_token=settings.internal_api_token):
        logger.warning(
            "internal_distribution_auth_failed",
            reason="invalid_credentials",
            client_ip=client_ip,
        )
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def _settings_as_response(snapshot: GroupSettingsSnapshot) -> SettingsResponse:
    return SettingsResponse(
        group_id=snapshot.group_id,
        max_members=snapshot.max_members,
        daily_view_limit=snapshot.daily_view_limit,
        distribution_days=snapshot.distribution_days,
        send_time=snapshot.send_time.strftime("%H:%M"),
        scheduler_active=snapshot.scheduler_active,
        payment_mode_active=snapshot.payment_mode_active,
        distribution_eligible=snapshot.distribution_eligible,
    )


def _as_patch(payload: SettingsUpdateRequest, *, clear_fields: list[str] | None = None) -> SettingsPatch:
    return SettingsPatch(
        daily_view_limit=payload.daily_view_limit,
        distribution_days=payload.distribution_days,
        max_members=payload.max_members,
        send_time=payload.send_time,
        scheduler_active=payload.scheduler_active,
        payment_mode_active=payload.payment_mode_active,
        clear_fields=frozenset(clear_fields or ()),
    )


@router.get("/internal/distribution/settings", response_model=SettingsResponse)
async def get_global_settings(request: Request) -> SettingsResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        snapshot = await GroupSettingsService.get_global_settings(session)
    return _settings_as_response(snapshot)


@router.patch("/internal/distribution/settings", response_model=SettingsResponse)
async def update_global_settings(payload: SettingsUpdateRequest, request: Request) -> SettingsResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        snapshot = await GroupSettingsService.apply_global_patch(
            session,
            patch=_as_patch(payload),
            now_utc=datetime.now(timezone.utc),
        )
    return _settings_as_response(snapshot)


@router.get("/internal/distribution/groups/{group_id}/settings", response_model=SettingsResponse)
async def get_group_settings(group_id: int, request: Request) -> SettingsResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        if await GroupsRepo.get_by_id(session, group_id) is None:
            raise HTTPException(status_code=404, detail={"code": "E_GROUP_NOT_FOUND"})
        snapshot = await GroupSettingsService.get_group_settings(session, group_id=group_id)
    return _settings_as_response(snapshot)


@router.patch("/internal/distribution/groups/{group_id}/settings", response_model=SettingsResponse)
async def update_group_settings(
    group_id: int,
    payload: GroupSettingsUpdateRequest,
    request: Request,
) -> SettingsResponse:
    _assert_internal_access(request)
    try:
        async with SessionLocal.begin() as session:
            snapshot = await GroupSettingsService.apply_group_patch(
                session,
                group_id=group_id,
                patch=_as_patch(payload, clear_fields=payload.clear_fields),
            )
    except GroupNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_GROUP_NOT_FOUND"}) from exc
    except SettingsFieldNotOverridableError as exc:
        raise HTTPException(status_code=422, detail={"code": "E_SETTINGS_FIELD_INVALID"}) from exc
    return _settings_as_response(snapshot)


@router.post("/internal/distribution/groups/{group_id}/run", response_model=DistributionRunResponse)
async def run_group_distribution(group_id: int, request: Request) -> DistributionRunResponse:
    _assert_internal_access(request)
    result = await DistributionService.run_for_group(
        group_id=group_id,
        now_utc=datetime.now(timezone.utc),
        notifier=TelegramNotifier(),
    )
    return DistributionRunResponse(
        group_id=result.group_id,
        local_date=result.local_date,
        outcome=result.outcome.value,
        next_day=result.next_day,
        codes_total=result.codes_total,
        codes_distributed=result.codes_distributed,
        codes_failed=result.codes_failed,
        assignments_created=result.assignments_created,
        viewers_notified=result.viewers_notified,
        reason=result.reason,
    )


@router.post("/internal/distribution/cycle/reset", response_model=CycleResetResponse)
async def reset_cycle(request: Request) -> CycleResetResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        reset = await CodeLedgerService.reset_cycle(session)
    logger.warning("cycle_reset_manual", codes_deleted=reset.codes_deleted)
    return CycleResetResponse(
        assignments_deleted=reset.assignments_deleted,
        codes_deleted=reset.codes_deleted,
    )


@router.get("/internal/distribution/stats", response_model=StatsResponse)
async def get_stats(request: Request) -> StatsResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        stats = await GroupSettingsService.collect_stats(session)
        overviews = await GroupSettingsService.list_group_overviews(session)
    return StatsResponse(
        generated_at=datetime.now(timezone.utc),
        members_total=stats.members_total,
        groups_total=stats.groups_total,
        codes_total=stats.codes_total,
        assignments_total=stats.assignments_total,
        global_settings=_settings_as_response(stats.global_settings),
        groups=[
            GroupOverviewResponse(
                group_id=overview.group_id,
                name=overview.name,
                members_total=overview.members_total,
                settings=_settings_as_response(overview.settings),
            )
            for overview in overviews
        ],
    )
