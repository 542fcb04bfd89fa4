"""Entity models for the tgcert persistence layer.

All models are frozen dataclasses.  Use :func:`dataclasses.replace`
for modifications (copy-on-write).
"""

from tgcert.models.action_log import ActionLogEntry
from tgcert.models.order import Order, TxtChallenge
from tgcert.models.user import User

__all__ = [
    "ActionLogEntry",
    "Order",
    "TxtChallenge",
    "User",
]
