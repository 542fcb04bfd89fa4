"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the application actually reads.

Access pattern::

    from tgcert.config import load_config

    settings = load_config("config.yaml")
    print(settings.acme.export_path)
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServerSettings:
    """HTTP server configuration for the webhook endpoint."""

    bind: str
    port: int
    workers: int
    worker_class: str
    timeout: int
    graceful_timeout: int
    keepalive: int


def _build_server(data: dict | None) -> ServerSettings:
    d = data or {}
    return ServerSettings(
        bind=d.get("bind", "127.0.0.1"),
        port=d.get("port", 8080),
        # One worker keeps the per-order transition locks authoritative.
        workers=d.get("workers", 1),
        worker_class=d.get("worker_class", "gthread"),
        timeout=d.get("timeout", 300),
        graceful_timeout=d.get("graceful_timeout", 30),
        keepalive=d.get("keepalive", 2),
    )


# ---------------------------------------------------------------------------
# Telegram
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TelegramSettings:
    """Bot API credentials and webhook protection."""

    token: str
    api_base: str
    webhook_secret: str
    owner_lock: bool
    request_timeout_seconds: int


def _build_telegram(data: dict | None) -> TelegramSettings:
    d = data or {}
    return TelegramSettings(
        token=d["token"],
        api_base=d.get("api_base", "https://api.telegram.org").rstrip("/"),
        webhook_secret=d.get("webhook_secret", ""),
        owner_lock=d.get("owner_lock", True),
        request_timeout_seconds=d.get("request_timeout_seconds", 10),
    )


# ---------------------------------------------------------------------------
# ACME tool
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AcmeToolSettings:
    """External issuance tool (acme.sh) invocation settings."""

    command: str
    server: str
    export_path: str
    timeout_seconds: int
    extra_args: tuple[str, ...]


def _build_acme(data: dict | None) -> AcmeToolSettings:
    d = data or {}
    return AcmeToolSettings(
        command=d.get("command", "/root/.acme.sh/acme.sh"),
        server=d.get("server", "letsencrypt"),
        export_path=d.get("export_path", "/var/lib/tgcert/certs"),
        timeout_seconds=d.get("timeout_seconds", 180),
        extra_args=tuple(d.get("extra_args", [])),
    )


# ---------------------------------------------------------------------------
# DNS
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DnsSettings:
    """Resolvers used to check TXT record propagation."""

    resolvers: tuple[str, ...]
    timeout_seconds: int


def _build_dns(data: dict | None) -> DnsSettings:
    d = data or {}
    return DnsSettings(
        resolvers=tuple(d.get("resolvers", [])),
        timeout_seconds=d.get("timeout_seconds", 10),
    )


# ---------------------------------------------------------------------------
# Quota
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QuotaSettings:
    """Issuance attempt allowance for non-privileged users."""

    default_member_quota: int
    refund_on_dry_run_failure: bool


def _build_quota(data: dict | None) -> QuotaSettings:
    d = data or {}
    return QuotaSettings(
        default_member_quota=d.get("default_member_quota", 1),
        refund_on_dry_run_failure=d.get("refund_on_dry_run_failure", False),
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Persistence backend selection and PostgreSQL connection settings."""

    backend: str
    host: str
    port: int
    database: str
    user: str
    password: str
    sslmode: str
    min_connections: int
    max_connections: int
    connection_timeout: int
    auto_setup: bool


def _build_database(data: dict | None) -> DatabaseSettings:
    d = data or {}
    return DatabaseSettings(
        backend=d.get("backend", "memory"),
        host=d.get("host", "localhost"),
        port=d.get("port", 5432),
        database=d.get("database", "tgcert"),
        user=d.get("user", "tgcert"),
        password=d.get("password", ""),
        sslmode=d.get("sslmode", "prefer"),
        min_connections=d.get("min_connections", 1),
        max_connections=d.get("max_connections", 5),
        connection_timeout=d.get("connection_timeout", 10),
        auto_setup=d.get("auto_setup", True),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditLogSettings:
    """Audit log output settings (file, rotation)."""

    enabled: bool
    file: str | None
    max_file_size_bytes: int
    backup_count: int


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format, audit)."""

    level: str
    format: str
    audit: AuditLogSettings


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    a = d.get("audit") or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
        audit=AuditLogSettings(
            enabled=a.get("enabled", False),
            file=a.get("file"),
            max_file_size_bytes=a.get("max_file_size_bytes", 10485760),
            backup_count=a.get("backup_count", 5),
        ),
    )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MessageSettings:
    templates_path: str | None


def _build_messages(data: dict | None) -> MessageSettings:
    d = data or {}
    return MessageSettings(templates_path=d.get("templates_path"))


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TgcertSettings:
    """Root of the typed settings tree."""

    server: ServerSettings
    telegram: TelegramSettings
    acme: AcmeToolSettings
    dns: DnsSettings
    quota: QuotaSettings
    database: DatabaseSettings
    logging: LoggingSettings
    messages: MessageSettings


def build_settings(data: dict) -> TgcertSettings:
    """Build the full typed settings tree from raw config data.

    Called once by :func:`tgcert.config.load_config` after schema
    validation and environment-variable resolution.
    """
    return TgcertSettings(
        server=_build_server(data.get("server")),
        telegram=_build_telegram(data.get("telegram")),
        acme=_build_acme(data.get("acme")),
        dns=_build_dns(data.get("dns")),
        quota=_build_quota(data.get("quota")),
        database=_build_database(data.get("database")),
        logging=_build_logging(data.get("logging")),
        messages=_build_messages(data.get("messages")),
    )
