"""Role-aware issuance quota."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tgcert.models import User
    from tgcert.repositories.base import UserRepository

log = logging.getLogger(__name__)


class QuotaPolicy:
    """Decide whether a user may start another issuance attempt.

    Owners and admins are never limited.  Members spend one unit of
    ``apply_quota`` per submitted domain; the counter never goes below
    zero.
    """

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    @staticmethod
    def has_quota(user: User) -> bool:
        if user.is_privileged:
            return True
        return user.apply_quota > 0

    def consume(self, user: User) -> User:
        """Spend one attempt; returns the refreshed user."""
        if user.is_privileged or user.apply_quota <= 0:
            return user
        updated = self._users.update(user.id, apply_quota=user.apply_quota - 1)
        log.info("User %s quota %d -> %d", user.id, user.apply_quota, updated.apply_quota)
        return updated

    def refund(self, user: User) -> User:
        """Give one attempt back (failed dry-run, when configured)."""
        if user.is_privileged:
            return user
        updated = self._users.update(user.id, apply_quota=user.apply_quota + 1)
        log.info("User %s quota refunded to %d", user.id, updated.apply_quota)
        return updated

    @staticmethod
    def exhausted_message(user: User) -> str:
        if user.is_privileged:
            return "✅ Administrators are not limited by the issuance quota."
        return (
            f"🚫 <b>Issuance quota exhausted</b> ({user.apply_quota} left). "
            "Please ask an administrator for more attempts."
        )
