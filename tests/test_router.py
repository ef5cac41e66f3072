# Tests for bot/router.py
# Created: 2026-10-13

import asyncio
from unittest.mock import AsyncMock

import pytest
from telegram import Update

from conftest import callback_update, inline_update, message_update
from maskbot.bot import EventRouter, UpdateStream


@pytest.fixture
def stream():
    return UpdateStream()


@pytest.fixture
def handlers():
    return AsyncMock()


@pytest.fixture
def router(stream, handlers, catalog):
    return EventRouter(stream, handlers, catalog)


class TestDispatch:
    async def test_start_command(self, router, handlers):
        await router.dispatch(message_update("/start"))
        handlers.start.assert_awaited_once()
        handlers.any_other_command.assert_not_called()

    async def test_other_command(self, router, handlers):
        await router.dispatch(message_update("/settings"))
        handlers.any_other_command.assert_awaited_once()
        handlers.start.assert_not_called()

    async def test_text(self, router, handlers):
        await router.dispatch(message_update("example.com"))
        handlers.generate_masked_email.assert_awaited_once()

    async def test_enable_callback(self, router, handlers):
        await router.dispatch(callback_update("id:me-1"))
        handlers.enable_masked_email.assert_awaited_once()

    async def test_prefix_callback(self, router, handlers):
        await router.dispatch(callback_update("prefix:shop"))
        handlers.generate_masked_email_with_prefix.assert_awaited_once()

    async def test_unknown_callback_is_dropped(self, router, handlers):
        await router.dispatch(callback_update("bogus:1"))
        assert handlers.method_calls == []
        assert router.processed == 0

    async def test_inline_query(self, router, handlers):
        await router.dispatch(inline_update("example.com"))
        handlers.answer_inline_query.assert_awaited_once()

    async def test_ignored_update(self, router, handlers):
        await router.dispatch(Update(update_id=7))
        assert handlers.method_calls == []

    async def test_localizer_follows_sender_language(self, router, handlers):
        await router.dispatch(message_update("/start", language_code="ru-RU"))
        localizer, event = handlers.start.await_args.args
        assert localizer.language == "ru"
        assert event.user_id == 42

    async def test_handler_error_is_contained(self, router, handlers):
        handlers.start.side_effect = RuntimeError("boom")
        await router.dispatch(message_update("/start"))
        assert router.processed == 1


class TestRun:
    async def test_failing_handler_does_not_stop_the_loop(self, router, stream, handlers):
        handlers.start.side_effect = RuntimeError("boom")

        async def last(localizer, event):
            await router.stop()

        handlers.generate_masked_email.side_effect = last

        await stream.queue.put(message_update("/start", update_id=1))
        await stream.queue.put(message_update("example.com", update_id=2))
        await asyncio.wait_for(router.run(), timeout=1)

        handlers.start.assert_awaited_once()
        handlers.generate_masked_email.assert_awaited_once()
        assert router.processed == 2

    async def test_events_handled_in_order(self, router, stream, handlers):
        seen = []

        async def record(localizer, event):
            seen.append(event.text)
            if len(seen) == 3:
                await router.stop()

        handlers.generate_masked_email.side_effect = record
        for i, text in enumerate(["a.com", "b.com", "c.com"]):
            await stream.queue.put(message_update(text, update_id=i))

        await asyncio.wait_for(router.run(), timeout=1)
        assert seen == ["a.com", "b.com", "c.com"]

    async def test_stop_before_run_leaves_queue_untouched(self, router, stream, handlers):
        await stream.queue.put(message_update("/start"))
        await router.stop()
        await asyncio.wait_for(router.run(), timeout=1)

        handlers.start.assert_not_called()
        assert stream.queue.qsize() == 1

    async def test_stop_wakes_idle_loop(self, router):
        task = asyncio.create_task(router.run())
        await asyncio.sleep(0)
        await router.stop()
        await asyncio.wait_for(task, timeout=1)
