"""Contract between the order state machine and the issuance tool.

The state machine never speaks ACME itself.  It asks an
:class:`AcmeOrchestrator` to run three steps and only looks at the
success flag and the textual output of each:

``dry_run(domains)``
    Request the DNS-01 challenge without final issuance.  The output
    must contain a ``<host> TXT value: <value>`` line.
``renew(domains)``
    Finish issuance once the TXT record is published.
``install_cert(primary_domain)``
    Copy the artifacts into the export layout (:func:`export_paths`).
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from pathlib import PurePosixPath


@dataclass(frozen=True)
class ToolResult:
    success: bool
    output: str = ""


@dataclass(frozen=True)
class ExportPaths:
    """Where an issued certificate's files are exported."""

    directory: str
    cert: str
    key: str
    fullchain: str


def export_paths(export_root: str, domain: str) -> ExportPaths:
    """Return ``<export_root>/<domain>/{cert,privkey,fullchain}.pem``."""
    directory = PurePosixPath(export_root) / domain
    return ExportPaths(
        directory=f"{directory}/",
        cert=str(directory / "cert.pem"),
        key=str(directory / "privkey.pem"),
        fullchain=str(directory / "fullchain.pem"),
    )


class AcmeOrchestrator(abc.ABC):
    """Base class for issuance-tool adapters."""

    @abc.abstractmethod
    def dry_run(self, domains: list[str]) -> ToolResult:
        """Request the DNS-01 challenge for *domains*."""

    @abc.abstractmethod
    def renew(self, domains: list[str]) -> ToolResult:
        """Complete issuance for *domains* after DNS propagation."""

    @abc.abstractmethod
    def install_cert(self, primary_domain: str) -> ToolResult:
        """Export the issued files of *primary_domain*."""
