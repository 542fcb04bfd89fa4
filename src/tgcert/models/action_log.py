"""Append-only audit trail entry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

_EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class ActionLogEntry:
    id: int
    user_id: int
    action: str
    detail: str = ""
    created_at: datetime = _EPOCH
