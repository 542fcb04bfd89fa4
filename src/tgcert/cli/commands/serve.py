"""Serve subcommand: run the webhook application."""

from __future__ import annotations

import logging
import sys

log = logging.getLogger(__name__)


def run_serve(settings, args) -> None:
    """Start gunicorn, or Flask's development server with ``--dev``."""
    from tgcert.app import create_app

    try:
        app = create_app(settings)
    except Exception as exc:
        if args.debug:
            raise
        print(f"tgcert: error: startup failed: {exc}", file=sys.stderr)
        sys.exit(1)

    if getattr(args, "dev", False):
        log.info("Starting development server (not for production)")
        app.run(
            host=settings.server.bind,
            port=settings.server.port,
            debug=True,
            use_reloader=False,
        )
        return

    from tgcert.server.gunicorn_app import run_gunicorn

    try:
        run_gunicorn(app, settings.server)
    except RuntimeError as exc:
        print(f"tgcert: error: {exc}", file=sys.stderr)
        sys.exit(1)
