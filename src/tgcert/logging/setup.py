"""Logging configuration for tgcert.

JSON-lines and text formatters, a context filter that stamps every
record with the webhook request id and the chat user behind it, and
``configure_logging`` which wires them onto the ``tgcert`` logger
hierarchy from the ``logging`` settings section.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

from flask import g, has_app_context

if TYPE_CHECKING:
    from tgcert.config.settings import LoggingSettings

# LogRecord attributes that are never copied into structured output
# as "extra" fields.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
        "request_id",
        "chat_user_id",
        "update_id",
    }
)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """One JSON object per line: standard fields, context, then extras."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        for attr in ContextFilter.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value is not None and value != "-":
                data[attr] = value

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Console formatter."""

    _FMT = "%(asctime)s %(levelname)-8s [%(request_id)s] user=%(chat_user_id)s %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class ContextFilter(logging.Filter):
    """Copy ``request_id``, ``chat_user_id`` and ``update_id`` from ``flask.g``.

    Outside a request context the attributes default to ``"-"`` so the
    text format string always resolves.
    """

    CONTEXT_ATTRS = ("request_id", "chat_user_id", "update_id")

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for attr in self.CONTEXT_ATTRS:
            if not hasattr(record, attr):
                setattr(record, attr, "-")

        if has_app_context():
            for attr in self.CONTEXT_ATTRS:
                value = g.get(attr)
                if value is not None:
                    setattr(record, attr, value)

        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``tgcert`` logger hierarchy from settings.

    Replaces existing handlers, so calling it twice is harmless.  When
    ``settings.audit.enabled`` and a file is set, ``tgcert.audit`` also
    writes JSON lines to a rotating file.

    Returns the ``tgcert`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root = logging.getLogger("tgcert")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    ctx_filter = ContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(ctx_filter)
    root.addHandler(console)

    audit = logging.getLogger("tgcert.audit")
    audit.handlers.clear()
    audit.setLevel(logging.INFO if settings.audit.enabled else logging.NOTSET)

    if settings.audit.enabled and settings.audit.file:
        try:
            fh = RotatingFileHandler(
                settings.audit.file,
                maxBytes=settings.audit.max_file_size_bytes,
                backupCount=settings.audit.backup_count,
            )
        except OSError as exc:
            root.warning("Could not open audit log file %s: %s", settings.audit.file, exc)
        else:
            fh.setFormatter(StructuredFormatter())
            fh.addFilter(ctx_filter)
            audit.addHandler(fh)

    for lib in ("werkzeug", "gunicorn", "gunicorn.access", "gunicorn.error"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root
