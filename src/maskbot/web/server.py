"""HTTP server for the OAuth2 callback.

Builds a small FastAPI app around the callback router and runs it with
uvicorn inside the bot's event loop, so both share one process and one
set of collaborators.
"""

from __future__ import annotations

import contextlib
import logging

import uvicorn
from fastapi import FastAPI

from maskbot import __version__
from maskbot.bot.notifier import TelegramNotifier
from maskbot.oauth import OAuth2Client
from maskbot.storage import CredentialStore
from maskbot.web.callback import router

logger = logging.getLogger(__name__)


def create_app(
    store: CredentialStore,
    oauth: OAuth2Client,
    notifier: TelegramNotifier,
    default_language: str = "en",
) -> FastAPI:
    """Build the FastAPI application with its collaborators attached."""
    app = FastAPI(
        title="maskbot",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.store = store
    app.state.oauth = oauth
    app.state.notifier = notifier
    app.state.default_language = default_language
    app.include_router(router)
    return app


class _Server(uvicorn.Server):
    """uvicorn server that leaves signal handling to the bot runner."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class CallbackServer:
    """uvicorn server that can be started and stopped from asyncio code."""

    def __init__(self, app: FastAPI, host: str = "0.0.0.0", port: int = 8080):
        config = uvicorn.Config(app, host=host, port=port, log_config=None, access_log=False)
        self._server = _Server(config)
        self.host = host
        self.port = port

    async def serve(self) -> None:
        logger.info("OAuth2 callback server listening on %s:%d", self.host, self.port)
        await self._server.serve()

    def stop(self) -> None:
        self._server.should_exit = True
