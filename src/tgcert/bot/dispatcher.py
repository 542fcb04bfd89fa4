"""Map Telegram updates onto order operations.

:class:`BotDispatcher` is transport-agnostic: :meth:`~BotDispatcher.dispatch`
takes a decoded ``Update`` dict and returns the outbound actions to
perform.  :func:`deliver` sends them through a :class:`TelegramClient`.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tgcert.bot.telegram import TelegramError
from tgcert.core.callback import CallbackAction, CallbackDecodeError
from tgcert.core.types import CallbackKind
from tgcert.messages.formatter import Reply
from tgcert.services.results import DuplicateOrder, ExternalToolFailure, Success

if TYPE_CHECKING:
    from tgcert.bot.telegram import TelegramClient
    from tgcert.messages.formatter import MessageFormatter
    from tgcert.models import User
    from tgcert.services.order import OrderStateMachine
    from tgcert.services.results import OrderResult
    from tgcert.services.user import UserService

log = logging.getLogger(__name__)

# Bot API limit for answerCallbackQuery text.
MAX_CALLBACK_ANSWER = 200

_TAG_RE = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class OutboundMessage:
    chat_id: int
    text: str
    reply_markup: dict[str, Any] | None = None


@dataclass(frozen=True)
class CallbackAnswer:
    callback_query_id: str
    text: str = ""


OutboundAction = OutboundMessage | CallbackAnswer


def plain_text(text: str, limit: int = MAX_CALLBACK_ANSWER) -> str:
    """Strip HTML markup from *text* and cut it to *limit* characters."""
    value = html.unescape(_TAG_RE.sub("", text)).strip()
    if len(value) > limit:
        value = value[: limit - 3].rstrip() + "..."
    return value


def update_sender(update: dict[str, Any]) -> dict[str, Any] | None:
    """Return the ``from`` object of a message or callback update."""
    for key in ("callback_query", "message"):
        body = update.get(key)
        if isinstance(body, dict) and isinstance(body.get("from"), dict):
            return body["from"]
    return None


class BotDispatcher:
    """Translate one update into state-machine calls and replies."""

    def __init__(
        self,
        users: UserService,
        machine: OrderStateMachine,
        formatter: MessageFormatter,
    ) -> None:
        self._users = users
        self._machine = machine
        self._formatter = formatter

    def dispatch(self, update: dict[str, Any]) -> list[OutboundAction]:
        if isinstance(update.get("callback_query"), dict):
            return self._handle_callback(update["callback_query"])
        if isinstance(update.get("message"), dict):
            return self._handle_message(update["message"])
        log.debug("Ignoring update %s without message or callback", update.get("update_id"))
        return []

    # -- text messages ------------------------------------------------------

    def _handle_message(self, message: dict[str, Any]) -> list[OutboundAction]:
        chat_id = (message.get("chat") or {}).get("id")
        sender = message.get("from") or {}
        text = (message.get("text") or "").strip()
        if not chat_id or not sender.get("id") or not text:
            return []

        user = self._users.start_user(sender["id"], sender.get("username"))

        if user.awaiting_domain and not text.startswith("/"):
            return self._messages(chat_id, self._machine.submit_domain(user.id, text))

        command, _, arg = text.partition(" ")
        command = command.split("@", 1)[0].lower()
        arg = arg.strip()

        match command:
            case "/start":
                replies = [self._formatter.welcome(user)]
            case "/help":
                replies = [self._formatter.help()]
            case "/new":
                return self._messages(chat_id, self._machine.start_order(user))
            case "/domain":
                if arg:
                    return self._messages(chat_id, self._machine.create_order(user, arg))
                return self._messages(chat_id, self._machine.start_order(user))
            case "/orders":
                return self._messages(chat_id, self._machine.list_orders(user))
            case "/verify" | "/status":
                return self._domain_command(chat_id, user, command, arg)
            case _:
                replies = [self._formatter.unknown_command()]

        return [self._outbound(chat_id, reply) for reply in replies]

    def _domain_command(
        self,
        chat_id: int,
        user: User,
        command: str,
        domain: str,
    ) -> list[OutboundAction]:
        if not domain:
            return [OutboundMessage(chat_id, f"Usage: {command} example.com")]
        if command == "/verify":
            result = self._machine.verify_by_domain(user, domain)
        else:
            result = self._machine.status(user, domain)
        return self._messages(chat_id, result)

    # -- inline keyboard callbacks -----------------------------------------

    def _handle_callback(self, callback: dict[str, Any]) -> list[OutboundAction]:
        callback_id = str(callback.get("id") or "")
        sender = callback.get("from") or {}
        chat_id = ((callback.get("message") or {}).get("chat") or {}).get("id")
        data = callback.get("data") or ""
        if not callback_id or not chat_id or not sender.get("id") or not data:
            return []

        try:
            action = CallbackAction.decode(data)
        except CallbackDecodeError as exc:
            log.warning("Rejected callback data %r: %s", data, exc)
            return [CallbackAnswer(callback_id, "This button is no longer supported.")]

        user = self._users.start_user(sender["id"], sender.get("username"))

        match action.kind:
            case CallbackKind.TYPE:
                result = self._machine.set_order_type(user.id, action.order_id, action.cert_type)
            case CallbackKind.VERIFY:
                result = self._machine.verify_order_by_id(user.id, action.order_id)
            case CallbackKind.RETRY:
                result = self._machine.retry_order(user.id, action.order_id)
            case CallbackKind.DOWNLOAD:
                result = self._machine.download_info(user.id, action.order_id)
            case CallbackKind.INFO:
                result = self._machine.certificate_info(user.id, action.order_id)
            case CallbackKind.LATER:
                return [
                    CallbackAnswer(callback_id, "Noted, you can verify later."),
                    self._outbound(chat_id, self._formatter.later()),
                ]
            case CallbackKind.MENU:
                return [
                    CallbackAnswer(callback_id),
                    *self._messages(chat_id, self._machine.list_orders(user)),
                ]

        answer = "" if result.ok else plain_text(result.message)
        return [CallbackAnswer(callback_id, answer), *self._messages(chat_id, result)]

    # -- result rendering ---------------------------------------------------

    def _messages(self, chat_id: int, result: OrderResult) -> list[OutboundAction]:
        if isinstance(result, Success):
            return [self._outbound(chat_id, reply) for reply in result.replies]

        keyboard = None
        if isinstance(result, (DuplicateOrder, ExternalToolFailure)) and result.order is not None:
            keyboard = self._formatter.card_keyboard(result.order)
        log.info("Order operation failed (%s) for chat %s", result.kind, chat_id)
        return [self._outbound(chat_id, Reply(result.message, keyboard))]

    @staticmethod
    def _outbound(chat_id: int, reply: Reply) -> OutboundMessage:
        return OutboundMessage(chat_id, reply.text, reply.reply_markup())


def deliver(client: TelegramClient, actions: list[OutboundAction]) -> None:
    """Send *actions* in order.

    A rejected callback answer (for example an expired query) is logged
    and skipped; a failed ``sendMessage`` raises :class:`TelegramError`.
    """
    for action in actions:
        if isinstance(action, CallbackAnswer):
            try:
                client.answer_callback_query(action.callback_query_id, action.text)
            except TelegramError as exc:
                log.warning("Could not answer callback %s: %s", action.callback_query_id, exc)
        else:
            client.send_message(action.chat_id, action.text, action.reply_markup)
