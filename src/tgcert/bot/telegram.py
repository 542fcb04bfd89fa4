"""Minimal Telegram Bot API client.

Only the three methods the bot needs: ``sendMessage``,
``answerCallbackQuery`` and ``setWebhook``.  Requests are JSON POSTs
to ``<api_base>/bot<token>/<method>``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import urllib.error
import urllib.request
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tgcert.config.settings import TelegramSettings

log = logging.getLogger(__name__)

PARSE_MODE = "HTML"


class TelegramError(Exception):
    """The Bot API could not be reached or answered ``ok: false``."""

    def __init__(self, method: str, description: str, status: int | None = None) -> None:
        self.method = method
        self.description = description
        self.status = status
        super().__init__(f"{method} failed: {description}")


class TelegramClient:
    """Synchronous Bot API client over :mod:`urllib.request`."""

    def __init__(self, settings: TelegramSettings) -> None:
        self._base_url = f"{settings.api_base}/bot{settings.token}"
        self._timeout = settings.request_timeout_seconds

    def call(self, method: str, payload: dict[str, Any]) -> Any:  # noqa: ANN401
        """POST *payload* to *method* and return the ``result`` field."""
        req = urllib.request.Request(
            f"{self._base_url}/{method}",
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                body = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            detail = ""
            with contextlib.suppress(Exception):
                detail = json.loads(exc.read().decode("utf-8")).get("description", "")
            log.warning("Telegram %s returned HTTP %d: %s", method, exc.code, detail)
            raise TelegramError(method, detail or str(exc), exc.code) from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            log.warning("Telegram %s request failed: %s", method, exc)
            raise TelegramError(method, str(exc)) from exc
        except ValueError as exc:
            raise TelegramError(method, f"invalid JSON response: {exc}") from exc

        if not body.get("ok"):
            raise TelegramError(method, body.get("description", "unknown error"))
        return body.get("result")

    def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: dict[str, Any] | None = None,
    ) -> Any:  # noqa: ANN401
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": PARSE_MODE,
            "disable_web_page_preview": True,
        }
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return self.call("sendMessage", payload)

    def answer_callback_query(self, callback_query_id: str, text: str = "") -> Any:  # noqa: ANN401
        payload: dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        return self.call("answerCallbackQuery", payload)

    def set_webhook(self, url: str, secret_token: str = "") -> Any:  # noqa: ANN401
        payload: dict[str, Any] = {
            "url": url,
            "allowed_updates": ["message", "callback_query"],
        }
        if secret_token:
            payload["secret_token"] = secret_token
        return self.call("setWebhook", payload)
