"""Telegram transport: update dispatch and the Bot API client."""

from tgcert.bot.dispatcher import (
    BotDispatcher,
    CallbackAnswer,
    OutboundMessage,
    deliver,
)
from tgcert.bot.telegram import TelegramClient, TelegramError

__all__ = [
    "BotDispatcher",
    "CallbackAnswer",
    "OutboundMessage",
    "TelegramClient",
    "TelegramError",
    "deliver",
]
