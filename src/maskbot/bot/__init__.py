"""Telegram side of maskbot: update stream, classification, routing, handlers."""

from maskbot.bot.events import (
    CallbackEvent,
    CommandEvent,
    EnableAction,
    Event,
    InlineQueryEvent,
    PrefixAction,
    TextEvent,
    classify,
    decode_callback_data,
)
from maskbot.bot.handlers import Handlers
from maskbot.bot.notifier import TelegramNotifier
from maskbot.bot.router import EventRouter
from maskbot.bot.stream import UpdateStream

__all__ = [
    "CallbackEvent",
    "CommandEvent",
    "EnableAction",
    "Event",
    "EventRouter",
    "Handlers",
    "InlineQueryEvent",
    "PrefixAction",
    "TelegramNotifier",
    "TextEvent",
    "UpdateStream",
    "classify",
    "decode_callback_data",
]
