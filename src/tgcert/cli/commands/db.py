"""Database management subcommands."""

from __future__ import annotations

import logging
import sys

log = logging.getLogger(__name__)


def run_db(settings, args) -> None:
    """Handle db subcommands."""
    if args.db_command == "init":
        _db_init(settings)
    else:
        print("usage: tgcert db init", file=sys.stderr)
        sys.exit(1)


def _db_init(settings) -> None:
    """Apply the bundled schema to the configured PostgreSQL database."""
    if settings.database.backend != "postgres":
        print("database.backend is 'memory'; nothing to initialise", file=sys.stderr)
        sys.exit(1)

    from tgcert.db import apply_schema, init_database

    try:
        db = init_database(settings.database)
        if not settings.database.auto_setup:
            apply_schema(db)
    except Exception as exc:  # noqa: BLE001
        log.debug("Schema initialisation failed", exc_info=True)
        print(f"schema initialisation failed: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Schema applied to {settings.database.database}@{settings.database.host}")
