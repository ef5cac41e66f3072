"""Inbound Telegram updates as an async iterator.

Created: 2026-10-09
``telegram.ext.Updater`` long-polls getUpdates and pushes every update into
an asyncio.Queue; the router consumes that queue through this iterator.
Once stop() is called the iterator ends and no further update is drawn from
the queue, even if some are still queued. An update drawn in the same tick
as stop() is still handed out.
"""

from __future__ import annotations

import asyncio
import logging

from telegram import Update
from telegram.ext import Updater

logger = logging.getLogger(__name__)

ALLOWED_UPDATES = [Update.MESSAGE, Update.CALLBACK_QUERY, Update.INLINE_QUERY]


class UpdateStream:
    """Lazy, non-restartable sequence of updates."""

    def __init__(
        self,
        queue: asyncio.Queue | None = None,
        updater: Updater | None = None,
        poll_timeout: int = 30,
    ):
        self.queue: asyncio.Queue = queue if queue is not None else asyncio.Queue()
        self.updater = updater
        self.poll_timeout = poll_timeout
        self._closed = asyncio.Event()

    @classmethod
    def for_bot(cls, bot, poll_timeout: int = 30) -> UpdateStream:
        queue: asyncio.Queue = asyncio.Queue()
        return cls(queue, Updater(bot=bot, update_queue=queue), poll_timeout)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def start(self) -> None:
        """Start long polling. Without an updater, updates are fed by hand."""
        if self.updater is None:
            return
        await self.updater.initialize()
        await self.updater.start_polling(
            timeout=self.poll_timeout,
            allowed_updates=ALLOWED_UPDATES,
            drop_pending_updates=False,
        )
        logger.info("Polling Telegram for updates")

    def __aiter__(self) -> UpdateStream:
        return self

    async def __anext__(self) -> Update:
        if self._closed.is_set():
            raise StopAsyncIteration

        get = asyncio.ensure_future(self.queue.get())
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            done, _ = await asyncio.wait({get, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            # An orphaned get() would swallow a later update
            get.cancel()
            closed.cancel()

        # Already taken off the queue, so it is handed out even after stop()
        if get in done:
            return get.result()
        raise StopAsyncIteration

    async def stop(self) -> None:
        """Stop receiving updates. Safe to call more than once."""
        if self._closed.is_set():
            return
        self._closed.set()
        if self.updater is not None and self.updater.running:
            await self.updater.stop()
        logger.info("Stopped receiving updates")

    async def aclose(self) -> None:
        await self.stop()
        if self.updater is not None:
            await self.updater.shutdown()
