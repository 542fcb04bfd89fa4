"""Tests for tgcert.acme (acme.sh subprocess adapter and export paths)."""

from __future__ import annotations

import subprocess
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from tgcert.acme.acmesh import AcmeShOrchestrator
from tgcert.acme.base import export_paths

RUN = "tgcert.acme.acmesh.subprocess.run"
MANUAL = "--yes-I-know-dns-manual-mode-enough-go-ahead-please"


@pytest.fixture()
def tool_settings(tmp_path):
    return SimpleNamespace(
        command="/opt/acme.sh/acme.sh",
        server="letsencrypt",
        export_path=str(tmp_path / "certs"),
        timeout_seconds=60,
        extra_args=("--keylength", "ec-256"),
    )


def _completed(returncode=0, stdout="done"):
    return SimpleNamespace(returncode=returncode, stdout=stdout)


class TestExportPaths:
    def test_layout(self):
        paths = export_paths("/srv/certs", "example.com")
        assert paths.directory == "/srv/certs/example.com/"
        assert paths.cert == "/srv/certs/example.com/cert.pem"
        assert paths.key == "/srv/certs/example.com/privkey.pem"
        assert paths.fullchain == "/srv/certs/example.com/fullchain.pem"


class TestCommands:
    def test_dry_run_arguments(self, tool_settings):
        with patch(RUN, return_value=_completed()) as run:
            result = AcmeShOrchestrator(tool_settings).dry_run(["example.com", "*.example.com"])

        assert result.success is True
        assert result.output == "done"
        cmd = run.call_args.args[0]
        assert cmd == [
            "/opt/acme.sh/acme.sh",
            "--issue",
            "--dns",
            "-d",
            "example.com",
            "-d",
            "*.example.com",
            MANUAL,
            "--server",
            "letsencrypt",
            "--keylength",
            "ec-256",
        ]
        kwargs = run.call_args.kwargs
        assert kwargs["timeout"] == 60
        assert kwargs["stderr"] is subprocess.STDOUT
        assert kwargs["check"] is False

    def test_renew_arguments(self, tool_settings):
        with patch(RUN, return_value=_completed()) as run:
            AcmeShOrchestrator(tool_settings).renew(["example.com"])
        cmd = run.call_args.args[0]
        assert cmd[1:5] == ["--renew", "-d", "example.com", MANUAL]

    def test_install_cert_creates_directory(self, tool_settings, tmp_path):
        with patch(RUN, return_value=_completed()) as run:
            result = AcmeShOrchestrator(tool_settings).install_cert("example.com")

        assert result.success is True
        target = tmp_path / "certs" / "example.com"
        assert target.is_dir()
        cmd = run.call_args.args[0]
        assert cmd[1:3] == ["--install-cert", "-d"]
        assert cmd[cmd.index("--key-file") + 1] == f"{target}/privkey.pem"
        assert cmd[cmd.index("--fullchain-file") + 1] == f"{target}/fullchain.pem"

    def test_install_cert_directory_error(self, tool_settings, tmp_path):
        blocker = tmp_path / "certs"
        blocker.write_text("not a directory", encoding="utf-8")
        with patch(RUN) as run:
            result = AcmeShOrchestrator(tool_settings).install_cert("example.com")
        assert result.success is False
        assert "cannot create export directory" in result.output
        run.assert_not_called()


class TestFailures:
    def test_nonzero_exit(self, tool_settings):
        with patch(RUN, return_value=_completed(1, "  Verify error  \n")):
            result = AcmeShOrchestrator(tool_settings).dry_run(["example.com"])
        assert result.success is False
        assert result.output == "Verify error"

    def test_timeout(self, tool_settings):
        error = subprocess.TimeoutExpired(cmd="acme.sh", timeout=60, output=b"partial")
        with patch(RUN, side_effect=error):
            result = AcmeShOrchestrator(tool_settings).renew(["example.com"])
        assert result.success is False
        assert result.output == "acme.sh --renew timed out after 60s\npartial"

    def test_missing_binary(self, tool_settings):
        with patch(RUN, side_effect=FileNotFoundError("no such file")):
            result = AcmeShOrchestrator(tool_settings).dry_run(["example.com"])
        assert result.success is False
        assert result.output.startswith("cannot run /opt/acme.sh/acme.sh")

    def test_empty_stdout(self, tool_settings):
        with patch(RUN, return_value=_completed(0, None)):
            result = AcmeShOrchestrator(tool_settings).dry_run(["example.com"])
        assert result.success is True
        assert result.output == ""
