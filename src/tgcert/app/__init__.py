"""Flask application package for tgcert.

Public API::

    from tgcert.app import create_app
"""

from tgcert.app.factory import create_app

__all__ = ["create_app"]
