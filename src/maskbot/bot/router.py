# Event router — the update loop of the bot.
# Created: 2026-10-10
#
# Draws one update at a time, classifies it, localizes it and awaits the
# matching handler. A handler that raises is logged and skipped; the loop
# only ends when the update stream does.

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from telegram import Update

from maskbot.bot.events import (
    CallbackEvent,
    CommandEvent,
    EnableAction,
    Event,
    InlineQueryEvent,
    PrefixAction,
    TextEvent,
    classify,
)
from maskbot.bot.handlers import Handlers
from maskbot.bot.stream import UpdateStream
from maskbot.i18n import Catalog, Localizer

logger = logging.getLogger(__name__)

Handler = Callable[[Localizer, Event], Awaitable[None]]


class EventRouter:
    """Routes classified updates to handlers."""

    def __init__(self, stream: UpdateStream, handlers: Handlers, catalog: Catalog):
        self.stream = stream
        self.handlers = handlers
        self.catalog = catalog
        self.processed = 0

    def route(self, event: Event) -> tuple[Handler, str] | None:
        """Pick the handler for an event, with a label for log lines."""
        if isinstance(event, CommandEvent):
            if event.command == "start":
                return self.handlers.start, "command"
            return self.handlers.any_other_command, "command"
        if isinstance(event, TextEvent):
            return self.handlers.generate_masked_email, "link"
        if isinstance(event, CallbackEvent):
            if isinstance(event.action, EnableAction):
                return self.handlers.enable_masked_email, "enable"
            if isinstance(event.action, PrefixAction):
                return self.handlers.generate_masked_email_with_prefix, "prefix"
            return None
        if isinstance(event, InlineQueryEvent):
            return self.handlers.answer_inline_query, "inline query"
        return None

    async def dispatch(self, update: Update) -> None:
        """Handle one update. Never raises."""
        try:
            event = classify(update)
        except Exception:
            logger.exception("Error while classifying update %s", update.update_id)
            return
        if event is None:
            return

        target = self.route(event)
        if target is None:
            return
        handler, label = target

        localizer = self.catalog.localizer(event.language_code)
        try:
            await handler(localizer, event)
        except Exception:
            logger.exception("Error while handling %s from %s", label, event.user_id)
        finally:
            self.processed += 1

    async def run(self) -> None:
        """Consume the stream until it ends."""
        logger.info("Event router started")
        async for update in self.stream:
            await self.dispatch(update)
        logger.info("Event router stopped after %d events", self.processed)

    async def stop(self) -> None:
        """Close the stream; the handler in flight, if any, still completes."""
        await self.stream.stop()
