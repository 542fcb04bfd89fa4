"""DNS subcommands: check TXT propagation from this host."""

from __future__ import annotations

import sys

import dns.exception


def run_dns(settings, args) -> None:
    if args.dns_command != "check":
        print("usage: tgcert dns check HOST VALUE", file=sys.stderr)
        sys.exit(1)

    from tgcert.challenge.resolver import DnsChallengeResolver

    resolver = DnsChallengeResolver(settings.dns)
    try:
        records = resolver.lookup_txt(args.host)
    except dns.exception.DNSException as exc:
        records = []
        print(f"{args.host}: lookup failed ({exc.__class__.__name__})")

    for record in records:
        print(f"{args.host} TXT {record}")

    if resolver.verify_propagation(args.host, args.value):
        print("propagated")
        sys.exit(0)
    print("not propagated yet")
    sys.exit(1)
