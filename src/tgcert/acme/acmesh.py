"""acme.sh adapter for :class:`~tgcert.acme.base.AcmeOrchestrator`.

Runs the ``acme.sh`` script in manual DNS mode.  Every invocation is
bounded by ``acme.timeout_seconds``; stdout and stderr are merged and
returned verbatim as the tool output.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from tgcert.acme.base import AcmeOrchestrator, ToolResult, export_paths

if TYPE_CHECKING:
    from tgcert.config.settings import AcmeToolSettings

log = logging.getLogger(__name__)

_MANUAL_DNS_FLAG = "--yes-I-know-dns-manual-mode-enough-go-ahead-please"


def _domain_args(domains: list[str]) -> list[str]:
    args: list[str] = []
    for domain in domains:
        args.extend(["-d", domain])
    return args


class AcmeShOrchestrator(AcmeOrchestrator):
    """Drive ``acme.sh --issue/--renew/--install-cert`` via subprocess."""

    def __init__(self, settings: AcmeToolSettings) -> None:
        self.settings = settings

    def dry_run(self, domains: list[str]) -> ToolResult:
        return self._run(
            [
                "--issue",
                "--dns",
                *_domain_args(domains),
                _MANUAL_DNS_FLAG,
                "--server",
                self.settings.server,
                *self.settings.extra_args,
            ]
        )

    def renew(self, domains: list[str]) -> ToolResult:
        return self._run(
            [
                "--renew",
                *_domain_args(domains),
                _MANUAL_DNS_FLAG,
                "--server",
                self.settings.server,
                *self.settings.extra_args,
            ]
        )

    def install_cert(self, primary_domain: str) -> ToolResult:
        paths = export_paths(self.settings.export_path, primary_domain)
        try:
            Path(paths.directory).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return ToolResult(
                success=False,
                output=f"cannot create export directory {paths.directory}: {exc}",
            )
        return self._run(
            [
                "--install-cert",
                "-d",
                primary_domain,
                "--cert-file",
                paths.cert,
                "--key-file",
                paths.key,
                "--fullchain-file",
                paths.fullchain,
            ]
        )

    def _run(self, args: list[str]) -> ToolResult:
        cmd = [self.settings.command, *args]
        timeout = self.settings.timeout_seconds
        log.info("Running %s", " ".join(cmd))
        try:
            proc = subprocess.run(  # noqa: S603
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            partial = exc.output or ""
            if isinstance(partial, bytes):
                partial = partial.decode("utf-8", errors="replace")
            log.warning("%s timed out after %ss", cmd[1], timeout)
            return ToolResult(
                success=False,
                output=f"acme.sh {args[0]} timed out after {timeout}s\n{partial}".rstrip(),
            )
        except OSError as exc:
            log.error("Could not start %s: %s", self.settings.command, exc)
            return ToolResult(success=False, output=f"cannot run {self.settings.command}: {exc}")

        output = (proc.stdout or "").strip()
        if proc.returncode != 0:
            log.warning("acme.sh %s exited with status %d", args[0], proc.returncode)
            return ToolResult(success=False, output=output)
        return ToolResult(success=True, output=output)
