"""Tests for tgcert.logging.setup."""

from __future__ import annotations

import json
import logging
import sys
from types import SimpleNamespace

import pytest
from flask import Flask, g

from tgcert.logging.setup import (
    ContextFilter,
    StructuredFormatter,
    TextFormatter,
    configure_logging,
)


def _settings(level="INFO", fmt="text", enabled=False, file=None):
    return SimpleNamespace(
        level=level,
        format=fmt,
        audit=SimpleNamespace(
            enabled=enabled,
            file=file,
            max_file_size_bytes=1024,
            backup_count=1,
        ),
    )


def _record(msg="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("tgcert.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _restore_loggers():
    yield
    for name in ("tgcert", "tgcert.audit"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True


class TestContextFilter:
    def test_defaults_outside_request(self):
        record = _record()
        assert ContextFilter().filter(record) is True
        assert record.request_id == "-"
        assert record.chat_user_id == "-"
        assert record.update_id == "-"

    def test_copies_from_flask_g(self):
        with Flask("t").app_context():
            g.request_id = "req-9"
            g.chat_user_id = 1001
            record = _record()
            ContextFilter().filter(record)
        assert record.request_id == "req-9"
        assert record.chat_user_id == 1001
        assert record.update_id == "-"


class TestFormatters:
    def test_structured(self):
        record = _record("value %s", event_id="tgcert.audit.x", user_id=5)
        record.args = ("42",)
        ContextFilter().filter(record)
        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "value 42"
        assert data["level"] == "INFO"
        assert data["logger"] == "tgcert.test"
        assert data["event_id"] == "tgcert.audit.x"
        assert data["user_id"] == 5
        assert "request_id" not in data

    def test_structured_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        data = json.loads(StructuredFormatter().format(record))
        assert "ValueError: boom" in data["exception"]

    def test_text(self):
        record = _record()
        ContextFilter().filter(record)
        line = TextFormatter().format(record)
        assert "[-] user=- tgcert.test: hello" in line


class TestConfigureLogging:
    def test_text_console(self):
        root = configure_logging(_settings(level="debug"))

        assert root.name == "tgcert"
        assert root.level == logging.DEBUG
        assert root.propagate is False
        [handler] = root.handlers
        assert isinstance(handler.formatter, TextFormatter)
        assert logging.getLogger("werkzeug").level == logging.WARNING

    def test_json_console(self):
        root = configure_logging(_settings(fmt="json"))
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_idempotent(self):
        configure_logging(_settings())
        root = configure_logging(_settings())
        assert len(root.handlers) == 1

    def test_audit_file(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        configure_logging(_settings(enabled=True, file=str(path)))

        logging.getLogger("tgcert.audit").info(
            "order_issued user=1 example.com",
            extra={"event_id": "tgcert.audit.order_issued"},
        )
        for handler in logging.getLogger("tgcert.audit").handlers:
            handler.flush()

        data = json.loads(path.read_text(encoding="utf-8").strip())
        assert data["event_id"] == "tgcert.audit.order_issued"
        assert data["message"] == "order_issued user=1 example.com"

    def test_audit_disabled(self):
        configure_logging(_settings(enabled=False, file="/nonexistent/audit.log"))
        audit = logging.getLogger("tgcert.audit")
        assert audit.handlers == []
        assert audit.level == logging.NOTSET

    def test_unwritable_audit_file(self, tmp_path):
        target = tmp_path / "missing-dir" / "audit.log"
        root = configure_logging(_settings(enabled=True, file=str(target)))
        assert logging.getLogger("tgcert.audit").handlers == []
        assert len(root.handlers) == 1
