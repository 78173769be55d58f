from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import structlog
from aiogram import Bot

from codecircle.bot.application import build_bot
from codecircle.bot.texts.ar import TEXTS_AR
from codecircle.db.repo.members_repo import MembersRepo
from codecircle.db.session import SessionLocal

logger = structlog.get_logger(__name__)


class NotificationKind(str, Enum):
    CODES_WAITING = "codes.waiting"
    CONFIRM_REQUEST = "usage.confirm_request"
    USAGE_DISPUTED = "usage.disputed"
    PENALTY_WARNING = "penalty.warning"
    CONFIRMATION_WARNING = "penalty.confirmation_warning"
    PENALTY_SUSPENDED = "penalty.suspended"
    PENALTY_DELETED = "penalty.deleted"
    CODES_REACTIVATED = "codes.reactivated"


@dataclass(frozen=True, slots=True)
class Notification:
    member_id: int
    kind: NotificationKind
    params: dict[str, object] = field(default_factory=dict)
    # purged members have no row left to resolve the chat from
    telegram_user_id: int | None = None


@dataclass(frozen=True, slots=True)
class NotificationDeliveryResult:
    sent_total: int
    failed_total: int


class Notifier(Protocol):
    async def deliver(self, notifications: Sequence[Notification]) -> NotificationDeliveryResult: ...


def render_notification(notification: Notification) -> str:
    template = TEXTS_AR[f"msg.{notification.kind.value}"]
    return template.format(**notification.params)


async def _send_message(*, bot: Bot, chat_id: int | None, text: str, kind: str) -> bool:
    if chat_id is None:
        return False
    try:
        await bot.send_message(chat_id=chat_id, text=text)
        return True
    except Exception as exc:
        logger.warning("notification_send_failed", kind=kind, chat_id=chat_id, error=str(exc))
        return False


class TelegramNotifier:
    """Best-effort delivery; a failed send never fails the caller."""

    def __init__(
        self,
        *,
        bot_factory: Callable[[], Bot] = build_bot,
        session_factory=SessionLocal,
    ) -> None:
        self._bot_factory = bot_factory
        self._session_factory = session_factory

    async def _resolve_targets(self, notifications: Sequence[Notification]) -> dict[int, int]:
        missing = [item.member_id for item in notifications if item.telegram_user_id is None]
        if not missing:
            return {}
        async with self._session_factory.begin() as session:
            return await MembersRepo.list_telegram_ids(session, missing)

    async def deliver(self, notifications: Sequence[Notification]) -> NotificationDeliveryResult:
        if not notifications:
            return NotificationDeliveryResult(sent_total=0, failed_total=0)

        targets = await self._resolve_targets(notifications)
        sent_total = 0
        failed_total = 0
        bot = self._bot_factory()
        try:
            for item in notifications:
                chat_id = item.telegram_user_id
                if chat_id is None:
                    chat_id = targets.get(item.member_id)
                sent = await _send_message(
                    bot=bot,
                    chat_id=chat_id,
                    text=render_notification(item),
                    kind=item.kind.value,
                )
                if sent:
                    sent_total += 1
                else:
                    failed_total += 1
        finally:
            await bot.session.close()

        logger.info(
            "notifications_delivered",
            sent_total=sent_total,
            failed_total=failed_total,
        )
        return NotificationDeliveryResult(sent_total=sent_total, failed_total=failed_total)

    async def notify(
        self,
        member_id: int,
        kind: NotificationKind,
        params: dict[str, object] | None = None,
    ) -> bool:
        result = await self.deliver([Notification(member_id=member_id, kind=kind, params=params or {})])
        return result.sent_total == 1
