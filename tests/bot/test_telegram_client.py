"""Tests for tgcert.bot.telegram."""

from __future__ import annotations

import io
import json
import urllib.error
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from tgcert.bot.telegram import TelegramClient, TelegramError

URLOPEN = "tgcert.bot.telegram.urllib.request.urlopen"


@pytest.fixture()
def client():
    settings = SimpleNamespace(
        api_base="https://tg.example",
        token="123:abc",
        request_timeout_seconds=5,
    )
    return TelegramClient(settings)


def _response(body: dict) -> MagicMock:
    resp = MagicMock()
    resp.read.return_value = json.dumps(body).encode("utf-8")
    resp.__enter__.return_value = resp
    return resp


def _sent(urlopen) -> tuple[str, dict]:
    req = urlopen.call_args.args[0]
    return req.full_url, json.loads(req.data.decode("utf-8"))


class TestCall:
    def test_returns_result(self, client):
        with patch(URLOPEN, return_value=_response({"ok": True, "result": {"id": 1}})) as urlopen:
            assert client.call("getMe", {}) == {"id": 1}
        req = urlopen.call_args.args[0]
        assert req.full_url == "https://tg.example/bot123:abc/getMe"
        assert req.get_method() == "POST"
        assert urlopen.call_args.kwargs["timeout"] == 5

    def test_not_ok(self, client):
        body = {"ok": False, "description": "Bad Request: chat not found"}
        with patch(URLOPEN, return_value=_response(body)):
            with pytest.raises(TelegramError, match="chat not found") as exc_info:
                client.call("sendMessage", {})
        assert exc_info.value.method == "sendMessage"

    def test_http_error_description(self, client):
        error = urllib.error.HTTPError(
            "https://tg.example",
            403,
            "Forbidden",
            {},
            io.BytesIO(b'{"ok": false, "description": "bot was blocked by the user"}'),
        )
        with patch(URLOPEN, side_effect=error):
            with pytest.raises(TelegramError) as exc_info:
                client.call("sendMessage", {})
        assert exc_info.value.status == 403
        assert exc_info.value.description == "bot was blocked by the user"

    def test_network_error(self, client):
        with patch(URLOPEN, side_effect=urllib.error.URLError("unreachable")):
            with pytest.raises(TelegramError, match="unreachable") as exc_info:
                client.call("sendMessage", {})
        assert exc_info.value.status is None

    def test_invalid_json(self, client):
        resp = MagicMock()
        resp.read.return_value = b"<html>"
        resp.__enter__.return_value = resp
        with patch(URLOPEN, return_value=resp):
            with pytest.raises(TelegramError, match="invalid JSON"):
                client.call("sendMessage", {})


class TestMethods:
    def test_send_message(self, client):
        markup = {"inline_keyboard": [[{"text": "a", "callback_data": "verify:1"}]]}
        with patch(URLOPEN, return_value=_response({"ok": True, "result": {}})) as urlopen:
            client.send_message(42, "<b>hi</b>", markup)
        url, payload = _sent(urlopen)
        assert url.endswith("/sendMessage")
        assert payload == {
            "chat_id": 42,
            "text": "<b>hi</b>",
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
            "reply_markup": markup,
        }

    def test_send_message_without_markup(self, client):
        with patch(URLOPEN, return_value=_response({"ok": True, "result": {}})) as urlopen:
            client.send_message(42, "hi")
        assert "reply_markup" not in _sent(urlopen)[1]

    def test_answer_callback_query(self, client):
        with patch(URLOPEN, return_value=_response({"ok": True, "result": True})) as urlopen:
            client.answer_callback_query("q1")
        assert _sent(urlopen)[1] == {"callback_query_id": "q1"}

    def test_set_webhook(self, client):
        with patch(URLOPEN, return_value=_response({"ok": True, "result": True})) as urlopen:
            client.set_webhook("https://bot.example/webhook/s", secret_token="s")
        url, payload = _sent(urlopen)
        assert url.endswith("/setWebhook")
        assert payload["allowed_updates"] == ["message", "callback_query"]
        assert payload["secret_token"] == "s"
