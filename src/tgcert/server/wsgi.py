"""WSGI entry point for external servers.

The config file path is read from the ``TGCERT_CONFIG`` environment
variable.

Example::

    export TGCERT_CONFIG=/etc/tgcert/config.yaml
    gunicorn "tgcert.server.wsgi:app"
"""

from __future__ import annotations

import os
import sys

_config_path = os.environ.get("TGCERT_CONFIG")
if _config_path is None:
    sys.exit("TGCERT_CONFIG is not set")

from tgcert.config import load_config  # noqa: E402

_settings = load_config(_config_path)

from tgcert.logging import configure_logging  # noqa: E402

configure_logging(_settings.logging)

from tgcert.app import create_app  # noqa: E402

app = create_app(_settings)
