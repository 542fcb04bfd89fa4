"""First-contact registration of chat users."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tgcert.core.types import AuditAction, UserRole

if TYPE_CHECKING:
    from tgcert.config.settings import QuotaSettings, TelegramSettings
    from tgcert.logging.audit import AuditTrail
    from tgcert.models import User
    from tgcert.repositories.base import UserRepository

log = logging.getLogger(__name__)


class UserService:
    """Create or load the :class:`User` behind a chat identity.

    With ``telegram.owner_lock`` enabled the very first user to contact
    the bot becomes its owner; everybody after that is a member with
    ``quota.default_member_quota`` attempts.
    """

    def __init__(
        self,
        users: UserRepository,
        audit: AuditTrail,
        telegram_settings: TelegramSettings,
        quota_settings: QuotaSettings,
    ) -> None:
        self._users = users
        self._audit = audit
        self._telegram = telegram_settings
        self._quota = quota_settings

    def start_user(self, external_id: int, username: str | None = None) -> User:
        """Return the user for *external_id*, registering it if needed."""
        user = self._users.find_by_external_id(external_id)
        if user is not None:
            if username and username != user.username:
                user = self._users.update(user.id, username=username)
            return user

        if self._telegram.owner_lock and self._users.count() == 0:
            role = UserRole.OWNER
        else:
            role = UserRole.MEMBER

        user = self._users.create(
            external_id=external_id,
            role=role,
            apply_quota=self._quota.default_member_quota,
            username=username,
        )
        log.info("Registered user %s (external id %s) as %s", user.id, external_id, role.value)
        self._audit.record(user.id, AuditAction.USER_REGISTERED, f"{external_id} {role.value}")
        return user

    def find_by_external_id(self, external_id: int) -> User | None:
        return self._users.find_by_external_id(external_id)

