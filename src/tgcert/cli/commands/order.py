"""Order subcommands for operators."""

from __future__ import annotations

import sys


def run_order(settings, args) -> None:
    if args.order_command != "status":
        print("usage: tgcert order status DOMAIN", file=sys.stderr)
        sys.exit(1)

    from tgcert.app.context import Container
    from tgcert.bot.dispatcher import plain_text

    container = Container(settings)
    result = container.machine.status_by_domain(args.domain)

    print(plain_text(result.message, limit=100_000))
    sys.exit(0 if result.ok else 1)
