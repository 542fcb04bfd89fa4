"""tgcert command-line entry point.

Usage::

    tgcert -c /etc/tgcert/config.yaml
    tgcert -c config.yaml --validate-only
    tgcert -c config.yaml serve --dev
    tgcert -c config.yaml db init
    tgcert -c config.yaml dns check _acme-challenge.example.com <value>
    tgcert -c config.yaml order status example.com
    tgcert -c config.yaml webhook set https://bot.example.com
    python -m tgcert -c config.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from tgcert import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tgcert",
        description="tgcert: TLS certificates through a Telegram bot (DNS-01)",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the YAML configuration file.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the webhook server")
    serve_parser.add_argument(
        "--dev",
        action="store_true",
        default=False,
        help="Use Flask's development server instead of gunicorn.",
    )

    # db
    db_parser = subparsers.add_parser("db", help="Database management")
    db_sub = db_parser.add_subparsers(dest="db_command")
    db_sub.add_parser("init", help="Create the tables and indexes")

    # dns
    dns_parser = subparsers.add_parser("dns", help="DNS challenge tools")
    dns_sub = dns_parser.add_subparsers(dest="dns_command")
    check = dns_sub.add_parser("check", help="Check whether a TXT record is visible")
    check.add_argument("host", help="Record name, e.g. _acme-challenge.example.com")
    check.add_argument("value", help="Expected TXT value")

    # order
    order_parser = subparsers.add_parser("order", help="Inspect certificate orders")
    order_sub = order_parser.add_subparsers(dest="order_command")
    status = order_sub.add_parser("status", help="Show the latest order for a domain")
    status.add_argument("domain")

    # webhook
    webhook_parser = subparsers.add_parser("webhook", help="Telegram webhook registration")
    webhook_sub = webhook_parser.add_subparsers(dest="webhook_command")
    set_hook = webhook_sub.add_parser("set", help="Point the bot's webhook at this server")
    set_hook.add_argument("url", help="Public base URL, e.g. https://bot.example.com")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"tgcert: error: {message}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs the command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # Basic stderr logging until the configuration is loaded.
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    from tgcert.config import ConfigValidationError, load_config

    try:
        settings = load_config(config_path)
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)

    from tgcert.logging import configure_logging

    configure_logging(settings.logging)

    if args.validate_only:
        _print_settings_summary(settings)
        sys.exit(0)

    command = args.command

    if command == "db":
        from tgcert.cli.commands.db import run_db

        run_db(settings, args)
    elif command == "dns":
        from tgcert.cli.commands.dns import run_dns

        run_dns(settings, args)
    elif command == "order":
        from tgcert.cli.commands.order import run_order

        run_order(settings, args)
    elif command == "webhook":
        from tgcert.cli.commands.webhook import run_webhook

        run_webhook(settings, args)
    else:
        # No subcommand means serve.
        from tgcert.cli.commands.serve import run_serve

        _print_settings_summary(settings)
        run_serve(settings, args)


def _print_settings_summary(settings) -> None:
    """Print a short summary of the loaded configuration."""
    print(f"tgcert {_get_version()}")
    print(f"  server:   {settings.server.bind}:{settings.server.port} ({settings.server.workers} workers)")
    print(f"  database: {settings.database.backend}")
    print(f"  acme.sh:  {settings.acme.command} (server {settings.acme.server})")
    print(f"  export:   {settings.acme.export_path}")
    print(f"  dns:      {', '.join(settings.dns.resolvers) or 'system resolvers'}")
