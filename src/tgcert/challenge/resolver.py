"""DNS-01 challenge extraction and propagation checks.

The issuance tool prints the record the user must publish as a single
line of the form::

    _acme-challenge.example.com TXT value: <value>

:meth:`DnsChallengeResolver.parse_challenge` extracts it and
:meth:`DnsChallengeResolver.verify_propagation` checks whether a live
resolver already serves it.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import dns.exception
import dns.resolver

from tgcert.models.order import TxtChallenge

if TYPE_CHECKING:
    from tgcert.config.settings import DnsSettings

log = logging.getLogger(__name__)

CHALLENGE_MARKER = "_acme-challenge."

_CHALLENGE_RE = re.compile(r"(_acme-challenge\.\S+)\s+TXT\s+value:\s+(.+)")
_LINE_SPLIT_RE = re.compile(r"\r?\n")


class DnsChallengeResolver:
    """Parse tool output for TXT challenges and look them up live.

    Parameters
    ----------
    settings:
        ``dns`` settings section (resolvers and query lifetime).
        ``None`` uses the system resolver with a 10 second lifetime.

    """

    def __init__(self, settings: DnsSettings | None = None) -> None:
        self.settings = settings

    def parse_challenge(self, output: str) -> TxtChallenge | None:
        """Return the first TXT challenge announced in *output*, or ``None``."""
        for line in _LINE_SPLIT_RE.split(output or ""):
            if CHALLENGE_MARKER not in line:
                continue
            match = _CHALLENGE_RE.search(line)
            if match:
                return TxtChallenge(
                    name=match.group(1).strip(),
                    value=match.group(2).strip(),
                )
        return None

    def _make_resolver(self) -> dns.resolver.Resolver:
        resolver = dns.resolver.Resolver()
        resolvers = getattr(self.settings, "resolvers", ())
        if resolvers:
            resolver.nameservers = list(resolvers)
        resolver.lifetime = getattr(self.settings, "timeout_seconds", 10)
        return resolver

    def lookup_txt(self, host: str) -> list[str]:
        """Return the TXT strings served for *host* (segments concatenated).

        Raises :class:`dns.exception.DNSException` on lookup failure.
        """
        answer = self._make_resolver().resolve(host, "TXT")
        return [
            b"".join(rdata.strings).decode("utf-8", errors="replace") for rdata in answer
        ]

    def verify_propagation(self, host: str, value: str) -> bool:
        """Return ``True`` if *host* serves a TXT record matching *value*.

        A record matches when it equals *value*, equals *value* with
        surrounding quotes removed, or contains the unquoted value.
        Lookup failures count as "not propagated yet"; there is no retry.
        """
        expected = value.strip('"')
        try:
            records = self.lookup_txt(host)
        except dns.resolver.NXDOMAIN:
            log.info("TXT lookup for %s: NXDOMAIN (not propagated yet)", host)
            return False
        except dns.resolver.NoAnswer:
            log.info("TXT lookup for %s: no TXT records yet", host)
            return False
        except dns.exception.Timeout:
            log.warning("TXT lookup for %s timed out", host)
            return False
        except dns.exception.DNSException as exc:
            log.warning("TXT lookup for %s failed: %s", host, exc)
            return False

        for record in records:
            if record in (value, expected) or (expected and expected in record):
                log.info("TXT record for %s found", host)
                return True

        log.info(
            "TXT lookup for %s returned %d record(s), none matching",
            host,
            len(records),
        )
        return False
