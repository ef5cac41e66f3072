# Token source — per-user credential that refreshes lazily and persists.
# Created: 2026-10-07

from __future__ import annotations

import asyncio
import logging
from typing import Protocol
from weakref import WeakValueDictionary

from maskbot.models import Credential
from maskbot.storage import CredentialStore

logger = logging.getLogger(__name__)


class Refresher(Protocol):
    """Obtains a new credential from the authorization server."""

    async def refresh(self, credential: Credential | None) -> Credential: ...


class TokenSource:
    """Current valid credential of one user.

    Every call reads the store, which is the source of truth; nothing is
    cached in memory. An expired or missing credential is refreshed through
    the base refresher and written back before it is returned.
    """

    def __init__(
        self,
        store: CredentialStore,
        refresher: Refresher,
        telegram_id: int,
        lock: asyncio.Lock | None = None,
    ):
        self.store = store
        self.refresher = refresher
        self.telegram_id = telegram_id
        self._lock = lock or asyncio.Lock()

    async def token(self) -> Credential:
        """Return a valid credential.

        Raises:
            NotFoundError / InternalError: from the store, unchanged.
            UpstreamError: refresh failed; the stored credential is untouched.
            InternalError: refreshed but could not be persisted.
        """
        async with self._lock:
            user = self.store.get_user(self.telegram_id)
            if user.fastmail_token is not None and user.fastmail_token.is_valid():
                return user.fastmail_token

            refreshed = await self.refresher.refresh(user.fastmail_token)
            self.store.update_token(self.telegram_id, refreshed.to_json())
            logger.debug("Stored refreshed token for user %s", self.telegram_id)
            return refreshed


class TokenSourceFactory:
    """Hands out TokenSources that share one lock per identity.

    Two concurrent calls for the same user refresh once: the second waits,
    re-reads the store and gets the token the first one persisted.
    """

    def __init__(self, store: CredentialStore, refresher: Refresher):
        self.store = store
        self.refresher = refresher
        self._locks: WeakValueDictionary[int, asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, telegram_id: int) -> asyncio.Lock:
        lock = self._locks.get(telegram_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[telegram_id] = lock
        return lock

    def for_user(self, telegram_id: int) -> TokenSource:
        return TokenSource(self.store, self.refresher, telegram_id, self._lock_for(telegram_id))
