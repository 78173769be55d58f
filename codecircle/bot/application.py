from aiogram import Bot
from aiogram.client.default import DefaultBotProperties

from codecircle.core.config import get_settings


def build_bot() -> Bot:
    settings = get_settings()
    return Bot(token=settings.telegram_bot_token, default=DefaultBotProperties())
