"""Append-only audit trail.

Each entry is written to the :class:`ActionLogRepository` and emitted
on the ``tgcert.audit`` logger with a stable ``event_id`` so it can be
shipped to a log pipeline.  Writes are best effort: a failing
repository never aborts the operation that produced the entry.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tgcert.core.types import AuditAction

if TYPE_CHECKING:
    from tgcert.repositories.base import ActionLogRepository

audit_log = logging.getLogger("tgcert.audit")
log = logging.getLogger(__name__)

_MAX_LOGGED_DETAIL = 2000


class AuditTrail:
    def __init__(self, action_logs: ActionLogRepository) -> None:
        self._action_logs = action_logs

    def record(self, user_id: int, action: str, detail: str = "") -> None:
        detail = detail or ""
        audit_log.info(
            "%s user=%s %s",
            action,
            user_id,
            detail[:_MAX_LOGGED_DETAIL],
            extra={"event_id": f"tgcert.audit.{action}", "user_id": user_id},
        )
        try:
            self._action_logs.append(user_id, str(action), detail)
        except Exception:
            log.exception("Failed to persist audit entry %s for user %s", action, user_id)

    def status_change(self, user_id: int, domain: str, from_status, to_status) -> None:
        from_value = getattr(from_status, "value", from_status)
        to_value = getattr(to_status, "value", to_status)
        self.record(user_id, AuditAction.ORDER_STATUS_CHANGE, f"{domain} {from_value} -> {to_value}")
