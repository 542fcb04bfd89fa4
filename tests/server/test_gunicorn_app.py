"""Tests for tgcert.server (gunicorn runner and WSGI entry point).

gunicorn itself is replaced by a fake ``BaseApplication`` so these
tests run on every platform.
"""

from __future__ import annotations

import importlib
import logging
import sys
import types
from dataclasses import dataclass
from unittest.mock import MagicMock, patch

import pytest

from tgcert.server.gunicorn_app import build_options, run_gunicorn


@dataclass(frozen=True)
class _FakeServerSettings:
    bind: str = "127.0.0.1"
    port: int = 8080
    workers: int = 1
    worker_class: str = "sync"
    timeout: int = 120
    graceful_timeout: int = 30
    keepalive: int = 2


class _FakeCfg:
    def __init__(self):
        self.settings = {}

    def set(self, key, value):
        self.settings[key] = value


class _FakeBaseApplication:
    instances: list = []

    def __init__(self):
        self.cfg = _FakeCfg()
        self.load_config()
        _FakeBaseApplication.instances.append(self)

    def run(self):
        self.ran = True


def _fake_gunicorn_modules() -> dict:
    base = types.ModuleType("gunicorn.app.base")
    base.BaseApplication = _FakeBaseApplication
    return {
        "gunicorn": types.ModuleType("gunicorn"),
        "gunicorn.app": types.ModuleType("gunicorn.app"),
        "gunicorn.app.base": base,
    }


class TestBuildOptions:
    def test_options(self):
        options = build_options(_FakeServerSettings(bind="0.0.0.0", port=9000, workers=2))
        assert options["bind"] == "0.0.0.0:9000"
        assert options["workers"] == 2
        assert options["timeout"] == 120
        assert options["accesslog"] is None


class TestRunGunicorn:
    def test_missing_gunicorn(self):
        with patch.dict(
            sys.modules, {"gunicorn": None, "gunicorn.app": None, "gunicorn.app.base": None}
        ):
            with pytest.raises(RuntimeError, match="--dev"):
                run_gunicorn(MagicMock(), _FakeServerSettings())

    def test_runs_application(self):
        _FakeBaseApplication.instances.clear()
        flask_app = MagicMock()

        with patch.dict(sys.modules, _fake_gunicorn_modules()):
            run_gunicorn(flask_app, _FakeServerSettings())

        [instance] = _FakeBaseApplication.instances
        assert instance.ran is True
        assert instance.load() is flask_app
        assert instance.cfg.settings["bind"] == "127.0.0.1:8080"
        assert instance.cfg.settings["worker_class"] == "sync"


class TestWsgi:
    @pytest.fixture(autouse=True)
    def _fresh_module(self):
        sys.modules.pop("tgcert.server.wsgi", None)
        yield
        sys.modules.pop("tgcert.server.wsgi", None)
        root = logging.getLogger("tgcert")
        root.handlers.clear()
        root.setLevel(logging.NOTSET)
        root.propagate = True

    def test_exits_without_config(self, monkeypatch):
        monkeypatch.delenv("TGCERT_CONFIG", raising=False)
        with pytest.raises(SystemExit) as exc_info:
            importlib.import_module("tgcert.server.wsgi")
        assert exc_info.value.code == "TGCERT_CONFIG is not set"

    def test_builds_app(self, monkeypatch, tmp_config_file):
        monkeypatch.setenv("TGCERT_CONFIG", str(tmp_config_file))
        module = importlib.import_module("tgcert.server.wsgi")
        assert module.app.name == "tgcert"
        assert "container" in module.app.extensions
