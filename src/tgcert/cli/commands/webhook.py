"""Webhook subcommands: register the bot's webhook with Telegram."""

from __future__ import annotations

import sys


def webhook_url(settings, base_url: str) -> str:
    """Return the full webhook URL served by ``create_app``."""
    secret = settings.telegram.webhook_secret or settings.telegram.token
    return f"{base_url.rstrip('/')}/webhook/{secret}"


def run_webhook(settings, args) -> None:
    if args.webhook_command != "set":
        print("usage: tgcert webhook set URL", file=sys.stderr)
        sys.exit(1)

    if not args.url.startswith("https://"):
        print("Telegram only delivers webhooks to https:// URLs", file=sys.stderr)
        sys.exit(1)

    from tgcert.bot.telegram import TelegramClient, TelegramError

    client = TelegramClient(settings.telegram)
    try:
        client.set_webhook(
            webhook_url(settings, args.url),
            secret_token=settings.telegram.webhook_secret,
        )
    except TelegramError as exc:
        print(f"setWebhook failed: {exc.description}", file=sys.stderr)
        sys.exit(1)

    print(f"Webhook set to {args.url.rstrip('/')}/webhook/<secret>")
