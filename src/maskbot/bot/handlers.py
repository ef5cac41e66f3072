# Handlers — one coroutine per classified event kind.
# Created: 2026-10-10
#
# Every handler registers the sender on first contact, builds a token source
# for them before calling Fastmail, and answers errors with a localized
# message. Telegram API errors are not caught here; the router logs them.

from __future__ import annotations

import logging
import re
import urllib.parse

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InlineQueryResultArticle,
    InlineQueryResultsButton,
    InputTextMessageContent,
)

from maskbot.bot.events import (
    CALLBACK_DATA_LIMIT,
    CallbackEvent,
    CommandEvent,
    EnableAction,
    InlineQueryEvent,
    PrefixAction,
    TextEvent,
)
from maskbot.errors import (
    AlreadyExistsError,
    InternalError,
    MaskbotError,
    NotFoundError,
    UpstreamError,
)
from maskbot.i18n import Localizer
from maskbot.mail import MaskingEmail
from maskbot.models import MaskedEmail
from maskbot.oauth import OAuth2Client, TokenSourceFactory, new_code_verifier, new_state
from maskbot.storage import CredentialStore

logger = logging.getLogger(__name__)

MAX_PREFIX_LENGTH = CALLBACK_DATA_LIMIT - len("prefix:")
_PREFIX_RE = re.compile(rf"[a-z0-9_]{{1,{MAX_PREFIX_LENGTH}}}")


def parse_site_url(text: str) -> str | None:
    """Return text as an http(s) URL if it is one, else None.

    Bare domains (``example.com``) are read as https.
    """
    if not text or any(c.isspace() for c in text):
        return None
    if "://" not in text:
        if "." not in text:
            return None
        text = f"https://{text}"
    parts = urllib.parse.urlsplit(text)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    return text


def parse_prefix(text: str) -> str | None:
    prefix = text.lower()
    return prefix if _PREFIX_RE.fullmatch(prefix) else None


def error_message_id(exc: MaskbotError) -> str:
    """Catalog message shown to the user for an error."""
    if isinstance(exc, NotFoundError):
        return "not_authorized"
    if isinstance(exc, UpstreamError):
        return "upstream_failure"
    return "internal_failure"


class Handlers:
    """Event handlers with their collaborators injected."""

    def __init__(
        self,
        bot,
        store: CredentialStore,
        token_sources: TokenSourceFactory,
        mail: MaskingEmail,
        oauth: OAuth2Client,
        default_language: str = "en",
    ):
        self.bot = bot
        self.store = store
        self.token_sources = token_sources
        self.mail = mail
        self.oauth = oauth
        self.default_language = default_language

    def _ensure_user(self, telegram_id: int, language_code: str | None) -> bool:
        """Register the user if new. Returns True if the user already existed."""
        try:
            self.store.create_user(telegram_id, language_code or self.default_language)
        except AlreadyExistsError:
            return True
        logger.info("Registered user %s", telegram_id)
        return False

    def _created_reply(self, loc: Localizer, masked: MaskedEmail) -> tuple[str, InlineKeyboardMarkup]:
        button = InlineKeyboardButton(
            loc.localize("enable_button"),
            callback_data=EnableAction(masked.id).to_callback_data(),
        )
        return (
            loc.localize("masked_email_created", email=masked.email),
            InlineKeyboardMarkup([[button]]),
        )

    async def _send_error(self, loc: Localizer, chat_id: int, exc: MaskbotError) -> None:
        logger.warning("Request of %s failed: %s", chat_id, exc)
        await self.bot.send_message(chat_id=chat_id, text=loc.localize(error_message_id(exc)))

    # =========================================================================
    # Commands
    # =========================================================================

    async def start(self, loc: Localizer, event: CommandEvent) -> None:
        """Register the user and send a Fastmail login link."""
        try:
            language = event.language_code or self.default_language
            if self._ensure_user(event.user_id, language):
                self.store.update_language_code(event.user_id, language)

            state, verifier = new_state(), new_code_verifier()
            self.store.create_oauth2_state(state, verifier, event.user_id)
        except InternalError as e:
            await self._send_error(loc, event.chat_id, e)
            return

        login = InlineKeyboardButton(
            loc.localize("login_button"), url=self.oauth.authorization_url(state, verifier)
        )
        await self.bot.send_message(
            chat_id=event.chat_id,
            text=loc.localize("start_greeting"),
            reply_markup=InlineKeyboardMarkup([[login]]),
        )

    async def any_other_command(self, loc: Localizer, event: CommandEvent) -> None:
        try:
            self._ensure_user(event.user_id, event.language_code)
        except InternalError as e:
            await self._send_error(loc, event.chat_id, e)
            return
        await self.bot.send_message(chat_id=event.chat_id, text=loc.localize("unknown_command"))

    # =========================================================================
    # Free text
    # =========================================================================

    async def generate_masked_email(self, loc: Localizer, event: TextEvent) -> None:
        """A link creates an address for that site; a bare word offers a prefix."""
        try:
            self._ensure_user(event.user_id, event.language_code)
        except InternalError as e:
            await self._send_error(loc, event.chat_id, e)
            return

        url = parse_site_url(event.text)
        if url is None:
            prefix = parse_prefix(event.text)
            if prefix is None:
                await self.bot.send_message(
                    chat_id=event.chat_id, text=loc.localize("invalid_input")
                )
                return
            button = InlineKeyboardButton(
                loc.localize("prefix_button"),
                callback_data=PrefixAction(prefix).to_callback_data(),
            )
            await self.bot.send_message(
                chat_id=event.chat_id,
                text=loc.localize("prefix_offer", prefix=prefix),
                reply_markup=InlineKeyboardMarkup([[button]]),
            )
            return

        try:
            token_source = self.token_sources.for_user(event.user_id)
            masked = await self.mail.create_masked_email_from_url(token_source, url)
        except MaskbotError as e:
            await self._send_error(loc, event.chat_id, e)
            return

        text, markup = self._created_reply(loc, masked)
        await self.bot.send_message(chat_id=event.chat_id, text=text, reply_markup=markup)

    # =========================================================================
    # Callback buttons
    # =========================================================================

    async def generate_masked_email_with_prefix(self, loc: Localizer, event: CallbackEvent) -> None:
        if not isinstance(event.action, PrefixAction):
            return
        try:
            self._ensure_user(event.user_id, event.language_code)
            token_source = self.token_sources.for_user(event.user_id)
            masked = await self.mail.create_masked_email_with_prefix(
                token_source, event.action.prefix
            )
        except MaskbotError as e:
            logger.warning("Prefix request of %s failed: %s", event.user_id, e)
            await self.bot.answer_callback_query(
                callback_query_id=event.callback_query_id,
                text=loc.localize(error_message_id(e)),
                show_alert=True,
            )
            return

        await self.bot.answer_callback_query(callback_query_id=event.callback_query_id)
        text, markup = self._created_reply(loc, masked)
        await self.bot.send_message(
            chat_id=event.chat_id or event.user_id, text=text, reply_markup=markup
        )

    async def enable_masked_email(self, loc: Localizer, event: CallbackEvent) -> None:
        if not isinstance(event.action, EnableAction):
            return
        try:
            self._ensure_user(event.user_id, event.language_code)
            token_source = self.token_sources.for_user(event.user_id)
            await self.mail.enable_masked_email(token_source, event.action.masked_email_id)
        except MaskbotError as e:
            logger.warning("Enable request of %s failed: %s", event.user_id, e)
            await self.bot.answer_callback_query(
                callback_query_id=event.callback_query_id,
                text=loc.localize(error_message_id(e)),
                show_alert=True,
            )
            return

        await self.bot.answer_callback_query(
            callback_query_id=event.callback_query_id,
            text=loc.localize("masked_email_enabled"),
        )
        # Drop the Enable button from the message it was pressed on
        if event.inline_message_id:
            await self.bot.edit_message_reply_markup(
                inline_message_id=event.inline_message_id, reply_markup=None
            )
        elif event.chat_id is not None and event.message_id is not None:
            await self.bot.edit_message_reply_markup(
                chat_id=event.chat_id, message_id=event.message_id, reply_markup=None
            )

    # =========================================================================
    # Inline mode
    # =========================================================================

    async def answer_inline_query(self, loc: Localizer, event: InlineQueryEvent) -> None:
        """Answer ``@bot <link>`` with a freshly created address."""
        url = parse_site_url(event.query)
        try:
            self._ensure_user(event.user_id, event.language_code)
        except InternalError as e:
            logger.warning("Inline request of %s failed: %s", event.user_id, e)
            url = None

        if url is None:
            await self.bot.answer_inline_query(
                inline_query_id=event.inline_query_id,
                results=[],
                cache_time=0,
                is_personal=True,
            )
            return

        try:
            token_source = self.token_sources.for_user(event.user_id)
            masked = await self.mail.create_masked_email_from_url(token_source, url)
        except MaskbotError as e:
            logger.warning("Inline request of %s failed: %s", event.user_id, e)
            await self.bot.answer_inline_query(
                inline_query_id=event.inline_query_id,
                results=[],
                cache_time=0,
                is_personal=True,
                button=InlineQueryResultsButton(
                    text=loc.localize("inline_not_authorized"), start_parameter="login"
                ),
            )
            return

        enable = InlineKeyboardButton(
            loc.localize("enable_button"),
            callback_data=EnableAction(masked.id).to_callback_data(),
        )
        result = InlineQueryResultArticle(
            id=masked.id,
            title=loc.localize("inline_result_title"),
            description=loc.localize("inline_result_description", email=masked.email),
            input_message_content=InputTextMessageContent(masked.email),
            reply_markup=InlineKeyboardMarkup([[enable]]),
        )
        await self.bot.answer_inline_query(
            inline_query_id=event.inline_query_id,
            results=[result],
            cache_time=0,
            is_personal=True,
        )
