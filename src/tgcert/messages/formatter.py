"""Render order state into chat replies.

:class:`MessageFormatter` turns orders and operation outcomes into
:class:`Reply` objects: HTML text for Telegram's ``parse_mode=HTML``
plus an optional inline keyboard.  Templates resolve with a two-tier
loader:

1. User-specified ``messages.templates_path`` (overrides)
2. Built-in templates shipped with the package
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from jinja2 import BaseLoader, ChoiceLoader, Environment, FileSystemLoader, PackageLoader

from tgcert.acme.base import export_paths
from tgcert.core.callback import MENU_ORDERS, CallbackAction
from tgcert.core.types import CallbackKind, CertType, OrderStatus

if TYPE_CHECKING:
    from tgcert.acme.base import ExportPaths
    from tgcert.core.certinfo import CertificateInfo
    from tgcert.models import Order, TxtChallenge, User

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")
# Telegram rejects messages above 4096 characters.
_MAX_TOOL_OUTPUT = 3000

VERIFY_LABEL = "I have added the record (verify)"
RETRY_LABEL = "Retry the dry-run"
REGENERATE_LABEL = "Generate the TXT record again"


@dataclass(frozen=True)
class Button:
    text: str
    callback_data: str


Keyboard = tuple[tuple[Button, ...], ...]


@dataclass(frozen=True)
class Reply:
    text: str
    keyboard: Keyboard | None = None

    def reply_markup(self) -> dict[str, Any] | None:
        """Return the Bot API ``InlineKeyboardMarkup`` or ``None``."""
        if not self.keyboard:
            return None
        return {
            "inline_keyboard": [
                [{"text": b.text, "callback_data": b.callback_data} for b in row]
                for row in self.keyboard
            ]
        }


def _button(text: str, kind: CallbackKind, order_id: int | None = None, **kw: Any) -> Button:  # noqa: ANN401
    return Button(text=text, callback_data=CallbackAction(kind=kind, order_id=order_id, **kw).encode())


def _back_to_orders() -> tuple[Button, ...]:
    return (_button("Back to orders", CallbackKind.MENU, target=MENU_ORDERS),)


def _format_time(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime(_TIMESTAMP_FORMAT)


class MessageFormatter:
    """Build chat replies from orders; no side effects besides template lookup."""

    def __init__(self, export_root: str, templates_path: str | None = None) -> None:
        self.export_root = export_root

        loaders: list[BaseLoader] = []
        if templates_path:
            loaders.append(FileSystemLoader(templates_path))
        loaders.append(PackageLoader("tgcert.messages", "templates"))

        self._env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    def render(self, template: str, **context: Any) -> str:  # noqa: ANN401
        text = self._env.get_template(f"{template}.html").render(**context)
        return _EXCESS_BLANK_LINES.sub("\n\n", text).strip()

    def paths_for(self, order: Order) -> ExportPaths:
        computed = export_paths(self.export_root, order.domain)
        if order.cert_path:
            return replace(
                computed,
                cert=order.cert_path,
                key=order.key_path or computed.key,
                fullchain=order.fullchain_path or computed.fullchain,
            )
        return computed

    # -- keyboards ----------------------------------------------------------

    @staticmethod
    def type_keyboard(order_id: int) -> Keyboard:
        return (
            (
                _button(
                    "Root domain only (example.com)",
                    CallbackKind.TYPE,
                    order_id,
                    cert_type=CertType.ROOT,
                ),
            ),
            (
                _button(
                    "Wildcard (*.example.com, includes example.com)",
                    CallbackKind.TYPE,
                    order_id,
                    cert_type=CertType.WILDCARD,
                ),
            ),
        )

    @staticmethod
    def dns_keyboard(order_id: int) -> Keyboard:
        return (
            (
                _button("I have added the record", CallbackKind.VERIFY, order_id),
                _button("Later", CallbackKind.LATER, order_id),
            ),
        )

    @staticmethod
    def issued_keyboard(order_id: int) -> Keyboard:
        return (
            (
                _button("Download certificate", CallbackKind.DOWNLOAD, order_id),
                _button("Certificate info", CallbackKind.INFO, order_id),
            ),
        )

    @staticmethod
    def card_keyboard(order: Order) -> Keyboard | None:
        if order.status is OrderStatus.CREATED and order.domain:
            return (
                (_button(RETRY_LABEL, CallbackKind.RETRY, order.id),),
                _back_to_orders(),
            )
        if order.status is OrderStatus.DNS_WAIT:
            return (
                (_button(VERIFY_LABEL, CallbackKind.VERIFY, order.id),),
                (_button(REGENERATE_LABEL, CallbackKind.RETRY, order.id),),
                _back_to_orders(),
            )
        if order.status is OrderStatus.DNS_VERIFIED:
            return (
                (_button(VERIFY_LABEL, CallbackKind.VERIFY, order.id),),
                _back_to_orders(),
            )
        if order.status is OrderStatus.ISSUED:
            return (
                (
                    _button("View certificate", CallbackKind.INFO, order.id),
                    _button("Download certificate", CallbackKind.DOWNLOAD, order.id),
                ),
                _back_to_orders(),
            )
        return None

    # -- conversation -------------------------------------------------------

    def welcome(self, user: User) -> Reply:
        return Reply(self.render("welcome", user=user))

    def help(self) -> Reply:
        return Reply(self.render("help"))

    def type_prompt(self, order: Order) -> Reply:
        return Reply(self.render("type_prompt", order=order), self.type_keyboard(order.id))

    def domain_prompt(self, order: Order) -> Reply:
        return Reply(self.render("domain_prompt", order=order))

    @staticmethod
    def later() -> Reply:
        return Reply("OK. Press verify once the TXT record has been added.")

    @staticmethod
    def unknown_command() -> Reply:
        return Reply("Unknown command. Send /help to see the available commands.")

    # -- order state --------------------------------------------------------

    def dns_instructions(
        self,
        order: Order,
        challenge: TxtChallenge | None,
        output: str = "",
    ) -> Reply:
        text = self.render(
            "dns_instructions",
            order=order,
            challenge=challenge,
            output=output[-_MAX_TOOL_OUTPUT:],
        )
        return Reply(text, self.dns_keyboard(order.id))

    def order_status(self, order: Order, *, with_tips: bool = False) -> str:
        return self.render(
            "order_status",
            order=order,
            with_tips=with_tips,
            paths=self.paths_for(order),
            issued_at=_format_time(order.updated_at),
        )

    def order_card(self, order: Order) -> Reply:
        text = self.render(
            "order_card",
            order=order,
            paths=self.paths_for(order),
            issued_at=_format_time(order.updated_at),
        )
        return Reply(text, self.card_keyboard(order))

    @staticmethod
    def orders_header() -> Reply:
        return Reply("📂 <b>Certificate orders</b>\nPress an order button to view or act on it.")

    @staticmethod
    def no_orders() -> Reply:
        return Reply("📂 You have no certificate orders yet.")

    def issued(self, order: Order, expires_at: datetime | None = None) -> Reply:
        text = self.render(
            "issued",
            order=order,
            paths=self.paths_for(order),
            expires_at=_format_time(expires_at),
        )
        return Reply(text, self.issued_keyboard(order.id))

    def certificate_info(self, order: Order, info: CertificateInfo) -> Reply:
        text = self.render(
            "certificate_info",
            order=order,
            info=info,
            expires_at=_format_time(info.expires_at),
        )
        return Reply(text)

    def download_info(self, order: Order) -> Reply:
        return Reply(self.render("download_info", order=order, paths=self.paths_for(order)))

    def tool_failure(self, headline: str, output: str = "") -> str:
        """Failure text with the tool output escaped into a <pre> block."""
        return self.render("tool_failure", headline=headline, output=output[-_MAX_TOOL_OUTPUT:])
