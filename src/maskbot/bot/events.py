"""Classified Telegram updates.

Created: 2026-10-09
Every update the bot acts on decodes into exactly one of four event types.
Callback data is decoded here too, so handlers never split strings.

Callback data format: ``<kind>:<args>``
    id:<masked email id>      enable a pending masked email
    prefix:<email prefix>     create a masked email with that prefix
"""

from __future__ import annotations

from dataclasses import dataclass

from telegram import MessageEntity, Update

# Telegram limits callback_data to 64 bytes
CALLBACK_DATA_LIMIT = 64


@dataclass(frozen=True)
class EnableAction:
    masked_email_id: str

    def to_callback_data(self) -> str:
        return f"id:{self.masked_email_id}"


@dataclass(frozen=True)
class PrefixAction:
    prefix: str

    def to_callback_data(self) -> str:
        return f"prefix:{self.prefix}"


CallbackAction = EnableAction | PrefixAction


@dataclass(frozen=True)
class CommandEvent:
    user_id: int
    chat_id: int
    language_code: str | None
    command: str
    args: str = ""


@dataclass(frozen=True)
class TextEvent:
    user_id: int
    chat_id: int
    language_code: str | None
    text: str


@dataclass(frozen=True)
class CallbackEvent:
    user_id: int
    language_code: str | None
    callback_query_id: str
    action: CallbackAction
    chat_id: int | None = None
    message_id: int | None = None
    inline_message_id: str | None = None


@dataclass(frozen=True)
class InlineQueryEvent:
    user_id: int
    language_code: str | None
    inline_query_id: str
    query: str


Event = CommandEvent | TextEvent | CallbackEvent | InlineQueryEvent


def decode_callback_data(data: str | None) -> CallbackAction | None:
    """Decode ``kind:args``. Unknown kinds and empty arguments give None."""
    if not data:
        return None
    kind, _, rest = data.partition(":")
    if not rest:
        return None
    if kind == "id":
        return EnableAction(masked_email_id=rest)
    if kind == "prefix":
        return PrefixAction(prefix=rest)
    return None


def _parse_command(text: str, entities) -> tuple[str, str] | None:
    """Return (command, args) if the message starts with a bot command."""
    for entity in entities or ():
        if entity.type == MessageEntity.BOT_COMMAND and entity.offset == 0:
            # "/start@maskbot payload" -> ("start", "payload")
            command = text[1 : entity.length].split("@", 1)[0].lower()
            return command, text[entity.length :].strip()
    return None


def classify(update: Update) -> Event | None:
    """Decode an update into an event, or None if the bot ignores it."""
    message = update.message
    if message is not None:
        if message.from_user is None or message.text is None:
            return None
        user = message.from_user
        parsed = _parse_command(message.text, message.entities)
        if parsed is not None:
            command, args = parsed
            return CommandEvent(
                user_id=user.id,
                chat_id=message.chat.id,
                language_code=user.language_code,
                command=command,
                args=args,
            )
        return TextEvent(
            user_id=user.id,
            chat_id=message.chat.id,
            language_code=user.language_code,
            text=message.text.strip(),
        )

    query = update.callback_query
    if query is not None:
        action = decode_callback_data(query.data)
        if action is None:
            return None
        origin = query.message
        return CallbackEvent(
            user_id=query.from_user.id,
            language_code=query.from_user.language_code,
            callback_query_id=query.id,
            action=action,
            chat_id=origin.chat.id if origin is not None else None,
            message_id=origin.message_id if origin is not None else None,
            inline_message_id=query.inline_message_id,
        )

    inline = update.inline_query
    if inline is not None:
        return InlineQueryEvent(
            user_id=inline.from_user.id,
            language_code=inline.from_user.language_code,
            inline_query_id=inline.id,
            query=inline.query.strip(),
        )

    return None
