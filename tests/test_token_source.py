# Tests for oauth/token_source.py
# Created: 2026-10-12

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from maskbot.errors import InternalError, NotFoundError, UpstreamError
from maskbot.models import Credential
from maskbot.oauth import TokenSource, TokenSourceFactory


def _fresh(access: str = "fresh") -> Credential:
    return Credential(
        access_token=access, refresh_token="r", expiry=datetime.now(UTC) + timedelta(hours=1)
    )


def _expired() -> Credential:
    return Credential(
        access_token="stale", refresh_token="r", expiry=datetime.now(UTC) - timedelta(hours=1)
    )


@pytest.fixture
def refresher():
    r = AsyncMock()
    r.refresh = AsyncMock(return_value=_fresh("refreshed"))
    return r


class TestTokenSource:
    async def test_valid_token_needs_no_refresh_or_write(self, store, refresher):
        store.create_user(42, "en")
        store.update_token(42, _fresh().to_json())

        with patch.object(store, "update_token", wraps=store.update_token) as spy:
            token = await TokenSource(store, refresher, 42).token()

        assert token.access_token == "fresh"
        refresher.refresh.assert_not_called()
        spy.assert_not_called()

    async def test_expired_token_refreshes_once_and_persists(self, store, refresher):
        store.create_user(42, "en")
        stale = _expired()
        store.update_token(42, stale.to_json())

        with patch.object(store, "update_token", wraps=store.update_token) as spy:
            token = await TokenSource(store, refresher, 42).token()

        assert token.access_token == "refreshed"
        refresher.refresh.assert_awaited_once_with(stale)
        spy.assert_called_once()
        assert store.get_user(42).fastmail_token.access_token == "refreshed"

    async def test_missing_token_goes_to_refresher(self, store, refresher):
        store.create_user(42, "en")
        await TokenSource(store, refresher, 42).token()
        refresher.refresh.assert_awaited_once_with(None)

    async def test_unknown_user_propagates_without_refresh(self, store, refresher):
        with pytest.raises(NotFoundError):
            await TokenSource(store, refresher, 42).token()
        refresher.refresh.assert_not_called()

    async def test_refresh_failure_leaves_store_untouched(self, store, refresher):
        store.create_user(42, "en")
        stale = _expired()
        store.update_token(42, stale.to_json())
        refresher.refresh.side_effect = UpstreamError("invalid_grant", 400)

        with pytest.raises(UpstreamError):
            await TokenSource(store, refresher, 42).token()
        assert store.get_user(42).fastmail_token == stale

    async def test_persist_failure_fails_the_call(self, store, refresher):
        store.create_user(42, "en")
        store.update_token(42, _expired().to_json())

        with patch.object(store, "update_token", side_effect=InternalError("disk full")):
            with pytest.raises(InternalError):
                await TokenSource(store, refresher, 42).token()
        refresher.refresh.assert_awaited_once()


class TestTokenSourceFactory:
    async def test_same_user_shares_lock(self, store, refresher):
        factory = TokenSourceFactory(store, refresher)
        a = factory.for_user(42)
        b = factory.for_user(42)
        c = factory.for_user(43)
        assert a._lock is b._lock
        assert a._lock is not c._lock

    async def test_concurrent_calls_refresh_once(self, store):
        store.create_user(42, "en")
        store.update_token(42, _expired().to_json())

        async def slow_refresh(credential):
            await asyncio.sleep(0.01)
            return _fresh("refreshed")

        refresher = AsyncMock()
        refresher.refresh = AsyncMock(side_effect=slow_refresh)
        factory = TokenSourceFactory(store, refresher)

        first, second = await asyncio.gather(
            factory.for_user(42).token(), factory.for_user(42).token()
        )
        assert first.access_token == second.access_token == "refreshed"
        assert refresher.refresh.await_count == 1
