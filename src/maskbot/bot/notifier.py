# Notifier — localized one-off messages to a user, outside the update loop.
# Created: 2026-10-09

from __future__ import annotations

import logging

from maskbot.i18n import Catalog

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Sends a catalog message to a chat in the user's language."""

    def __init__(self, bot, catalog: Catalog):
        self.bot = bot
        self.catalog = catalog

    async def send_message(self, telegram_id: int, language_code: str, message_id: str) -> None:
        text = self.catalog.localizer(language_code).localize(message_id)
        await self.bot.send_message(chat_id=telegram_id, text=text)
        logger.debug("Sent '%s' to %s", message_id, telegram_id)
