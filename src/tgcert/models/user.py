"""Chat user entity."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from tgcert.core.types import PRIVILEGED_ROLES, PendingAction, UserRole

_EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class User:
    id: int
    external_id: int
    role: UserRole = UserRole.MEMBER
    apply_quota: int = 0
    pending_action: PendingAction = PendingAction.NONE
    pending_order_id: int | None = None
    username: str | None = None
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @property
    def awaiting_domain(self) -> bool:
        return self.pending_action is PendingAction.AWAIT_DOMAIN
