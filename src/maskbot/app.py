# Composition root — builds every collaborator once and runs them together.
# Created: 2026-10-11

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass

import httpx
from telegram import Bot

from maskbot.bot import EventRouter, Handlers, TelegramNotifier, UpdateStream
from maskbot.config import Settings
from maskbot.i18n import Catalog
from maskbot.mail import FastmailClient
from maskbot.oauth import OAuth2Client, OAuth2Config, TokenSourceFactory
from maskbot.storage import SQLCredentialStore
from maskbot.web import CallbackServer, create_app

logger = logging.getLogger(__name__)


@dataclass
class MaskBot:
    """Everything the process runs, wired together."""

    settings: Settings
    http: httpx.AsyncClient
    store: SQLCredentialStore
    oauth: OAuth2Client
    mail: FastmailClient
    bot: Bot
    stream: UpdateStream
    router: EventRouter
    server: CallbackServer

    async def run(self) -> None:
        """Run until SIGINT/SIGTERM or until the update stream ends."""
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
                installed.append(sig)
            except NotImplementedError:
                # Windows: KeyboardInterrupt still ends asyncio.run
                pass

        await self.bot.initialize()
        await self.stream.start()
        router_task = asyncio.create_task(self.router.run(), name="router")
        server_task = asyncio.create_task(self.server.serve(), name="callback-server")
        stop_task = asyncio.create_task(stop.wait(), name="stop")

        try:
            await asyncio.wait(
                {router_task, server_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
            logger.info("Shutting down")
        finally:
            stop_task.cancel()
            try:
                await self.router.stop()
                self.server.stop()
                for task in (router_task, server_task):
                    await asyncio.wait({task})
                    if not task.cancelled() and task.exception() is not None:
                        logger.error(
                            "Task %s failed", task.get_name(), exc_info=task.exception()
                        )
            finally:
                try:
                    await self.stream.aclose()
                finally:
                    await self.http.aclose()
                    self.store.close()
                    for sig in installed:
                        loop.remove_signal_handler(sig)
                    logger.info("Bye")


def build_app(settings: Settings) -> MaskBot:
    """Construct the bot from settings. Nothing touches the network yet."""
    if not settings.telegram_bot_token:
        raise ValueError("Telegram bot token is not set (MASKBOT_TELEGRAM_BOT_TOKEN)")
    if settings.telegram_debug:
        logging.getLogger("telegram").setLevel(logging.DEBUG)

    http = httpx.AsyncClient(timeout=settings.http_timeout)
    store = SQLCredentialStore(settings.get_database_url())

    mail = FastmailClient(
        OAuth2Config(
            client_id=settings.fastmail_client_id,
            auth_url=settings.fastmail_auth_url,
            token_url=settings.fastmail_token_url,
            redirect_url=settings.oauth_redirect_url,
            scopes=list(settings.fastmail_scopes),
        ),
        api_url=settings.fastmail_api_url,
        description=settings.masked_email_description,
        http=http,
    )
    oauth = OAuth2Client(mail.oauth2_config, http=http)

    bot = Bot(settings.telegram_bot_token)
    catalog = Catalog(default_language=settings.default_language)
    handlers = Handlers(
        bot=bot,
        store=store,
        token_sources=TokenSourceFactory(store, oauth),
        mail=mail,
        oauth=oauth,
        default_language=settings.default_language,
    )
    stream = UpdateStream.for_bot(bot, poll_timeout=settings.telegram_poll_timeout)
    router = EventRouter(stream, handlers, catalog)

    web_app = create_app(store, oauth, TelegramNotifier(bot, catalog), settings.default_language)
    server = CallbackServer(web_app, host=settings.http_host, port=settings.http_port)

    return MaskBot(
        settings=settings,
        http=http,
        store=store,
        oauth=oauth,
        mail=mail,
        bot=bot,
        stream=stream,
        router=router,
        server=server,
    )
