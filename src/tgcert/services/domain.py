"""Domain name checks applied before any issuance attempt."""

from __future__ import annotations

import encodings.idna  # noqa: F401
import re

from tgcert.core.types import CertType

_MAX_LABEL_LENGTH = 63
_MAX_NAME_LENGTH = 253
_LABEL_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
_TLD_RE = re.compile(r"^(?:[a-z]{2,63}|xn--[a-z0-9-]{1,59})$")

# Registrable names are label.tld; sub-domains are never issued.
MAX_LABELS = 2


class DomainRejected(ValueError):
    """Raised by :class:`DomainValidator` with a user-facing *detail*."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


def _to_ascii(value: str) -> str:
    """Convert internationalized labels to A-label (punycode) form."""
    try:
        value.encode("ascii")
        return value
    except UnicodeEncodeError:
        pass

    encoded_parts: list[str] = []
    for part in value.split("."):
        try:
            encoded_parts.append(part.encode("idna").decode("ascii"))
        except UnicodeError as err:
            msg = f"❌ Invalid internationalized domain label '{part}'."
            raise DomainRejected(msg) from err
    return ".".join(encoded_parts)


class DomainValidator:
    """Syntax and policy checks for submitted domains.

    :meth:`validate` returns the normalized domain (trimmed, lower-cased,
    punycode) or raises :class:`DomainRejected`.
    """

    def validate(self, domain: str, cert_type: CertType | str | None = None) -> str:
        value = (domain or "").strip().lower().rstrip(".")

        if "*" in value:
            msg = (
                "❌ Do not send a wildcard name (*.example.com); send only the main "
                "domain, for example <b>example.com</b>."
            )
            raise DomainRejected(msg)

        value = _to_ascii(value)
        self._check_syntax(value)

        if cert_type and len(value.split(".")) > MAX_LABELS:
            kind = "Wildcard" if cert_type == CertType.WILDCARD else "Root domain"
            msg = (
                f"⚠️ {kind} certificates need the main (root) domain, for example "
                "<b>example.com</b>, not a sub-domain."
            )
            raise DomainRejected(msg)

        return value

    @staticmethod
    def _check_syntax(value: str) -> None:
        malformed = "❌ The domain format is invalid, please check it and try again."
        if not value or len(value) > _MAX_NAME_LENGTH:
            raise DomainRejected(malformed)

        labels = value.split(".")
        if len(labels) < 2:  # noqa: PLR2004
            raise DomainRejected(malformed)
        for label in labels:
            if len(label) > _MAX_LABEL_LENGTH or not _LABEL_RE.match(label):
                raise DomainRejected(malformed)
        if not _TLD_RE.match(labels[-1]):
            raise DomainRejected(malformed)
