"""Flask application factory for tgcert.

Usage::

    from tgcert.app import create_app
    from tgcert.config import load_config

    app = create_app(load_config("config.yaml"))
"""

from __future__ import annotations

import hmac
import logging
import time
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from flask import Flask, g, jsonify, request

from tgcert.bot.dispatcher import deliver, update_sender

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

    from tgcert.app.context import Container
    from tgcert.config.settings import TgcertSettings

log = logging.getLogger(__name__)
access_log = logging.getLogger("tgcert.access")

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"

# Telegram updates are small; anything larger is not a Bot API delivery.
MAX_UPDATE_BYTES = 1024 * 1024


def create_app(
    settings: TgcertSettings,
    container: Container | None = None,
) -> Flask:
    """Create and configure the tgcert Flask application.

    Parameters
    ----------
    settings:
        Validated settings tree.
    container:
        Pre-built dependency container.  When ``None`` one is created
        from *settings*, opening the database for the ``postgres``
        backend.

    """
    app = Flask("tgcert")
    app.config["TGCERT_SETTINGS"] = settings
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPDATE_BYTES

    if container is None:
        from tgcert.app.context import Container  # noqa: PLC0415

        container = Container(settings)
    app.extensions["container"] = container

    if not settings.telegram.webhook_secret:
        log.warning(
            "telegram.webhook_secret is not set; the bot token is used as the webhook path secret",
        )

    _register_request_hooks(app)
    _register_webhook(app, container)
    _register_health(app, container)

    log.info("Flask application created (%s backend)", settings.database.backend)
    return app


# ---------------------------------------------------------------------------
# Request lifecycle
# ---------------------------------------------------------------------------


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def _before_request() -> None:
        g.request_id = request.headers.get("X-Request-ID") or uuid4().hex
        g.start_time = time.monotonic()

    @app.after_request
    def _after_request(response):  # noqa: ANN001, ANN202
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Request-ID"] = g.get("request_id", "")

        duration_ms = (time.monotonic() - g.get("start_time", time.monotonic())) * 1000
        # The webhook path carries the secret; log the route pattern instead.
        path = request.url_rule.rule if request.url_rule is not None else request.path
        access_log.info(
            "%s %s %d %.1fms",
            request.method,
            path,
            response.status_code,
            duration_ms,
            extra={"status": response.status_code, "duration_ms": round(duration_ms, 1)},
        )
        return response


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


def _secret_matches(settings: TgcertSettings, path_secret: str) -> bool:
    expected = settings.telegram.webhook_secret or settings.telegram.token
    if hmac.compare_digest(path_secret.encode(), expected.encode()):
        return True
    header = request.headers.get(SECRET_HEADER, "")
    return bool(
        settings.telegram.webhook_secret
        and header
        and hmac.compare_digest(header.encode(), settings.telegram.webhook_secret.encode()),
    )


def _register_webhook(app: Flask, container: Container) -> None:
    settings = container.settings

    @app.post("/webhook/<secret>")
    def webhook(secret: str) -> ResponseReturnValue:
        if not _secret_matches(settings, secret):
            log.warning("Rejected webhook call with an invalid secret")
            return jsonify({"ok": False}), 403

        update: Any = request.get_json(silent=True)
        if not isinstance(update, dict):
            return jsonify({"ok": False}), 400

        g.update_id = update.get("update_id")
        sender = update_sender(update)
        if sender is not None:
            g.chat_user_id = sender.get("id")

        try:
            actions = container.dispatcher.dispatch(update)
            deliver(container.telegram, actions)
        except Exception:  # noqa: BLE001
            # Answer 200 anyway so Telegram does not redeliver the update.
            log.exception("Failed to handle update %s", g.update_id)
            return jsonify({"ok": False}), 200

        return jsonify({"ok": True}), 200


# ---------------------------------------------------------------------------
# Infrastructure endpoints
# ---------------------------------------------------------------------------


def _register_health(app: Flask, container: Container) -> None:
    from tgcert import __version__  # noqa: PLC0415

    @app.get("/healthz")
    def healthz() -> ResponseReturnValue:
        result: dict = {
            "status": "ok",
            "version": __version__,
            "backend": container.settings.database.backend,
        }
        if container.db is not None:
            try:
                container.db.fetch_value("SELECT 1")
                result["database"] = "connected"
            except Exception:  # noqa: BLE001
                result["database"] = "disconnected"
                result["status"] = "degraded"

        code = 200 if result["status"] == "ok" else 503
        return jsonify(result), code
