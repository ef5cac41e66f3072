# Shared fixtures: real telegram model objects, an in-memory store, the catalog.
# Created: 2026-10-12

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from telegram import (
    CallbackQuery,
    Chat,
    InlineQuery,
    Message,
    MessageEntity,
    Update,
    User,
)

from maskbot.i18n import Catalog
from maskbot.storage import SQLCredentialStore


def tg_user(user_id: int = 42, language_code: str | None = "en") -> User:
    return User(id=user_id, first_name="Test", is_bot=False, language_code=language_code)


def tg_message(text: str, user_id: int = 42, language_code: str | None = "en") -> Message:
    entities = ()
    if text.startswith("/"):
        entities = (
            MessageEntity(type=MessageEntity.BOT_COMMAND, offset=0, length=len(text.split()[0])),
        )
    return Message(
        message_id=10,
        date=datetime.now(UTC),
        chat=Chat(id=user_id, type=Chat.PRIVATE),
        from_user=tg_user(user_id, language_code),
        text=text,
        entities=entities,
    )


def message_update(
    text: str, user_id: int = 42, language_code: str | None = "en", update_id: int = 1
) -> Update:
    return Update(update_id=update_id, message=tg_message(text, user_id, language_code))


def callback_update(
    data: str, user_id: int = 42, language_code: str | None = "en", update_id: int = 1
) -> Update:
    query = CallbackQuery(
        id="cb-1",
        from_user=tg_user(user_id, language_code),
        chat_instance="chat-instance",
        data=data,
        message=tg_message("Your new masked email", user_id, language_code),
    )
    return Update(update_id=update_id, callback_query=query)


def inline_update(
    query: str, user_id: int = 42, language_code: str | None = "en", update_id: int = 1
) -> Update:
    inline = InlineQuery(
        id="iq-1", from_user=tg_user(user_id, language_code), query=query, offset=""
    )
    return Update(update_id=update_id, inline_query=inline)


@pytest.fixture
def store():
    s = SQLCredentialStore("sqlite://")
    yield s
    s.close()


@pytest.fixture
def catalog():
    return Catalog()


@pytest.fixture
def bot():
    return AsyncMock()
