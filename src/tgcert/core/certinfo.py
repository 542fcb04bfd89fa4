"""Read metadata from exported certificate files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from cryptography import x509

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CertificateInfo:
    expires_at: datetime | None = None
    subject_names: tuple[str, ...] = ()


def read_certificate_info(cert_path: str | Path | None) -> CertificateInfo:
    """Parse the first PEM certificate in *cert_path*.

    A missing or unreadable file yields an empty :class:`CertificateInfo`
    so callers can still render the rest of their message.
    """
    if not cert_path:
        return CertificateInfo()
    path = Path(cert_path)
    if not path.is_file():
        return CertificateInfo()

    try:
        cert = x509.load_pem_x509_certificate(path.read_bytes())
    except (OSError, ValueError) as exc:
        log.warning("Could not parse certificate %s: %s", path, exc)
        return CertificateInfo()

    names: tuple[str, ...] = ()
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        names = tuple(san.value.get_values_for_type(x509.DNSName))
    except x509.ExtensionNotFound:
        pass

    return CertificateInfo(expires_at=cert.not_valid_after_utc, subject_names=names)
