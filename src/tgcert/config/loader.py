"""tgcert configuration loader.

Lifecycle::

    # Once, at startup (CLI or WSGI entry point)
    settings = load_config("/etc/tgcert/config.yaml")

    # Then pass the typed value object to whoever needs it
    app = create_app(settings)

Loading runs in four steps: parse YAML, resolve ``${VAR}`` /
``${VAR:-default}`` placeholders from the environment, validate
against the bundled JSON schema, then run cross-field checks.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from tgcert.config.settings import TgcertSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

# Telegram only accepts these characters in a webhook secret_token.
_WEBHOOK_SECRET_RE = re.compile(r"^[A-Za-z0-9_-]{1,256}$")

_PLACEHOLDER_TOKENS = frozenset({"change-me", "changeme", "your-bot-token"})

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when schema or cross-field validation finds problems."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


# ---------------------------------------------------------------------------
# Schema and cross-field validation
# ---------------------------------------------------------------------------


def _load_schema() -> dict:
    return json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))


def _schema_errors(data: dict) -> list[str]:
    validator = jsonschema.Draft202012Validator(_load_schema())
    errors = []
    for err in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        location = ".".join(str(p) for p in err.path) or "(root)"
        errors.append(f"{location}: {err.message}")
    return errors


def additional_checks(settings: TgcertSettings) -> list[str]:
    """Semantic and cross-field validation on the typed settings tree."""
    errors: list[str] = []

    if settings.telegram.token.strip().lower() in _PLACEHOLDER_TOKENS:
        errors.append("telegram.token is still a placeholder value")

    secret = settings.telegram.webhook_secret
    if secret and not _WEBHOOK_SECRET_RE.match(secret):
        errors.append(
            "telegram.webhook_secret may only contain A-Z, a-z, 0-9, '_' and '-' "
            "(1-256 characters)",
        )

    if not Path(settings.acme.export_path).is_absolute():
        errors.append(
            f"acme.export_path must be an absolute path, got '{settings.acme.export_path}'",
        )

    db = settings.database
    if db.backend == "postgres":
        if not db.database or not db.user:
            errors.append("database.database and database.user are required for postgres")
        if db.min_connections > db.max_connections:
            errors.append(
                f"database.min_connections ({db.min_connections}) exceeds "
                f"max_connections ({db.max_connections})",
            )

    if settings.server.workers > 1:
        log.warning(
            "server.workers=%d: per-order transition locks are process-local; "
            "concurrent verifications of one order in different workers are not serialised",
            settings.server.workers,
        )

    return errors


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config_data(data: dict) -> TgcertSettings:
    """Validate already-parsed config *data* and build settings.

    *data* is modified in place by environment-variable resolution.
    """
    if not isinstance(data, dict):
        raise ConfigValidationError(["configuration root must be a mapping"])

    _resolve_env_vars(data)

    errors = _schema_errors(data)
    if errors:
        raise ConfigValidationError(errors)

    settings = build_settings(data)
    errors = additional_checks(settings)
    if errors:
        raise ConfigValidationError(errors)
    return settings


def load_config(config_file: str | Path) -> TgcertSettings:
    """Load, resolve and validate the YAML configuration at *config_file*."""
    path = Path(config_file)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError([f"cannot read {path}: {exc}"]) from exc
    except yaml.YAMLError as exc:
        raise ConfigValidationError([f"invalid YAML in {path}: {exc}"]) from exc

    settings = load_config_data(raw if raw is not None else {})
    log.debug("Loaded configuration from %s", path)
    return settings
