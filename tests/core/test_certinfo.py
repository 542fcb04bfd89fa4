"""Unit tests for tgcert.core.certinfo."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from tgcert.core.certinfo import CertificateInfo, read_certificate_info

_NOT_AFTER = datetime(2027, 1, 17, 12, 0, tzinfo=UTC)


def _self_signed(names: list[str] | None) -> bytes:
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "example.com")])
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(_NOT_AFTER - timedelta(days=90))
        .not_valid_after(_NOT_AFTER)
    )
    if names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in names]),
            critical=False,
        )
    cert = builder.sign(key, hashes.SHA256())
    return cert.public_bytes(serialization.Encoding.PEM)


class TestReadCertificateInfo:
    def test_reads_expiry_and_names(self, tmp_path):
        path = tmp_path / "cert.pem"
        path.write_bytes(_self_signed(["example.com", "*.example.com"]))

        info = read_certificate_info(path)

        assert info.expires_at == _NOT_AFTER
        assert info.subject_names == ("example.com", "*.example.com")

    def test_without_san(self, tmp_path):
        path = tmp_path / "cert.pem"
        path.write_bytes(_self_signed(None))

        info = read_certificate_info(str(path))

        assert info.expires_at == _NOT_AFTER
        assert info.subject_names == ()

    @pytest.mark.parametrize("value", [None, ""])
    def test_no_path(self, value):
        assert read_certificate_info(value) == CertificateInfo()

    def test_missing_file(self, tmp_path):
        assert read_certificate_info(tmp_path / "nope.pem") == CertificateInfo()

    def test_garbage_file(self, tmp_path, caplog):
        path = tmp_path / "cert.pem"
        path.write_text("not a certificate")

        assert read_certificate_info(path) == CertificateInfo()
        assert "Could not parse certificate" in caplog.text
