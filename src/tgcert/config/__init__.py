"""Configuration subsystem for tgcert.

Public API::

    from tgcert.config import load_config

    settings = load_config("config.yaml")
    settings.acme.export_path      # typed access
"""

from tgcert.config.loader import (
    ConfigValidationError,
    load_config,
    load_config_data,
)
from tgcert.config.settings import (
    AcmeToolSettings,
    AuditLogSettings,
    DatabaseSettings,
    DnsSettings,
    LoggingSettings,
    MessageSettings,
    QuotaSettings,
    ServerSettings,
    TelegramSettings,
    TgcertSettings,
    build_settings,
)

__all__ = [
    "AcmeToolSettings",
    "AuditLogSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "DnsSettings",
    "LoggingSettings",
    "MessageSettings",
    "QuotaSettings",
    "ServerSettings",
    "TelegramSettings",
    "TgcertSettings",
    "build_settings",
    "load_config",
    "load_config_data",
]
