"""Logging subsystem for tgcert.

Public API::

    from tgcert.logging import configure_logging

    configure_logging(settings.logging)
"""

from tgcert.logging.audit import AuditTrail
from tgcert.logging.setup import configure_logging

__all__ = ["AuditTrail", "configure_logging"]
