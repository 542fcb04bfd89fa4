"""Issuance-tool contract and the acme.sh adapter."""

from tgcert.acme.acmesh import AcmeShOrchestrator
from tgcert.acme.base import AcmeOrchestrator, ExportPaths, ToolResult, export_paths

__all__ = [
    "AcmeOrchestrator",
    "AcmeShOrchestrator",
    "ExportPaths",
    "ToolResult",
    "export_paths",
]
