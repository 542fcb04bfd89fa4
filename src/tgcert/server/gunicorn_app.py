"""Run the webhook app under gunicorn without a gunicorn config file.

Usage::

    from tgcert.server.gunicorn_app import run_gunicorn

    run_gunicorn(flask_app, settings.server)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask

    from tgcert.config.settings import ServerSettings

log = logging.getLogger(__name__)


def build_options(settings: ServerSettings) -> dict:
    """Translate :class:`ServerSettings` into gunicorn config values."""
    return {
        "bind": f"{settings.bind}:{settings.port}",
        "workers": settings.workers,
        "worker_class": settings.worker_class,
        "timeout": settings.timeout,
        "graceful_timeout": settings.graceful_timeout,
        "keepalive": settings.keepalive,
        # tgcert.access already logs every request.
        "accesslog": None,
    }


def run_gunicorn(app: Flask, settings: ServerSettings) -> None:
    """Serve *app* with gunicorn until the master process exits.

    Raises :class:`RuntimeError` if gunicorn cannot be imported (it
    only runs on Unix).
    """
    try:
        from gunicorn.app.base import BaseApplication
    except ImportError as exc:
        msg = "gunicorn is not available on this platform; use 'serve --dev' instead"
        raise RuntimeError(msg) from exc

    options = build_options(settings)

    class _App(BaseApplication):
        def __init__(self, flask_app: Flask) -> None:
            self.application = flask_app
            super().__init__()

        def load_config(self) -> None:
            for key, value in options.items():
                self.cfg.set(key, value)

        def load(self) -> Flask:
            return self.application

    log.info(
        "Starting gunicorn on %s (%d workers, %s)",
        options["bind"],
        settings.workers,
        settings.worker_class,
    )
    _App(app).run()
