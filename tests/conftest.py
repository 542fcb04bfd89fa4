"""Root conftest for the tgcert test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from tgcert.acme.base import AcmeOrchestrator, ToolResult  # noqa: E402
from tgcert.challenge.resolver import DnsChallengeResolver  # noqa: E402
from tgcert.config.settings import build_settings  # noqa: E402
from tgcert.core.locks import OrderLocks  # noqa: E402
from tgcert.core.types import UserRole  # noqa: E402
from tgcert.logging.audit import AuditTrail  # noqa: E402
from tgcert.messages.formatter import MessageFormatter  # noqa: E402
from tgcert.repositories.memory import (  # noqa: E402
    InMemoryActionLogRepository,
    InMemoryOrderRepository,
    InMemoryUserRepository,
)
from tgcert.services.domain import DomainValidator  # noqa: E402
from tgcert.services.order import OrderStateMachine  # noqa: E402
from tgcert.services.quota import QuotaPolicy  # noqa: E402

DRY_RUN_OUTPUT = (
    "[Mon Oct 19 10:00:00 UTC 2026] Getting domain auth token for each domain\n"
    "[Mon Oct 19 10:00:01 UTC 2026] Add the following TXT record:\n"
    "[Mon Oct 19 10:00:01 UTC 2026] Domain: '_acme-challenge.example.com'\n"
    "_acme-challenge.example.com TXT value: abc123\n"
    "[Mon Oct 19 10:00:01 UTC 2026] Please be aware that you prepend _acme-challenge."
)


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeAcme(AcmeOrchestrator):
    """Records calls and returns preset :class:`ToolResult` values."""

    def __init__(self) -> None:
        self.dry_run_result = ToolResult(True, DRY_RUN_OUTPUT)
        self.renew_result = ToolResult(True, "Cert success.")
        self.install_result = ToolResult(True, "Installing cert to: ...")
        self.calls: list[tuple[str, object]] = []

    def dry_run(self, domains):
        self.calls.append(("dry_run", list(domains)))
        return self.dry_run_result

    def renew(self, domains):
        self.calls.append(("renew", list(domains)))
        return self.renew_result

    def install_cert(self, primary_domain):
        self.calls.append(("install_cert", primary_domain))
        return self.install_result


class FakeResolver(DnsChallengeResolver):
    """Real challenge parsing, canned propagation answers."""

    def __init__(self) -> None:
        super().__init__(None)
        self.propagated = True
        self.checks: list[tuple[str, str]] = []

    def verify_propagation(self, host, value):
        self.checks.append((host, value))
        return self.propagated


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data() -> dict:
    """Return a dict containing the minimum required config fields."""
    return {"telegram": {"token": "123456:TEST-token"}}


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


@pytest.fixture()
def export_root(tmp_path: Path) -> str:
    root = tmp_path / "certs"
    root.mkdir()
    return str(root)


@pytest.fixture()
def settings(export_root):
    return build_settings(
        {
            "telegram": {"token": "123456:TEST-token", "webhook_secret": "hook-secret"},
            "acme": {"export_path": export_root},
        },
    )


# ---------------------------------------------------------------------------
# Repositories and services
# ---------------------------------------------------------------------------


@pytest.fixture()
def users():
    return InMemoryUserRepository()


@pytest.fixture()
def orders():
    return InMemoryOrderRepository()


@pytest.fixture()
def action_logs():
    return InMemoryActionLogRepository()


@pytest.fixture()
def audit(action_logs):
    return AuditTrail(action_logs)


@pytest.fixture()
def acme():
    return FakeAcme()


@pytest.fixture()
def resolver():
    return FakeResolver()


@pytest.fixture()
def formatter(export_root):
    return MessageFormatter(export_root)


@pytest.fixture()
def machine(users, orders, audit, acme, resolver, formatter, export_root):
    return OrderStateMachine(
        users,
        orders,
        audit,
        QuotaPolicy(users),
        DomainValidator(),
        resolver,
        acme,
        formatter,
        export_root,
        OrderLocks(),
    )


@pytest.fixture()
def member(users):
    """A member with a single issuance attempt."""
    return users.create(external_id=1001, role=UserRole.MEMBER, apply_quota=1, username="alice")


@pytest.fixture()
def owner(users):
    return users.create(external_id=1000, role=UserRole.OWNER, apply_quota=0, username="root")
