"""Repository contracts required by the tgcert core.

The state machine only talks to these protocols.  Concrete backends
live in :mod:`tgcert.repositories.memory` and
:mod:`tgcert.repositories.postgres`.

``update`` takes partial fields and returns the full, refreshed entity.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from tgcert.core.types import CertType, UserRole
    from tgcert.models import ActionLogEntry, Order, User


class UserRepository(Protocol):
    def find_by_id(self, user_id: int) -> User | None: ...

    def find_by_external_id(self, external_id: int) -> User | None: ...

    def create(
        self,
        *,
        external_id: int,
        role: UserRole,
        apply_quota: int,
        username: str | None = None,
    ) -> User: ...

    def update(self, user_id: int, **fields: Any) -> User: ...

    def count(self) -> int: ...


class OrderRepository(Protocol):
    def find_by_id(self, order_id: int) -> Order | None: ...

    def find_for_user(self, order_id: int, user_id: int) -> Order | None:
        """Return the order only when it belongs to *user_id*."""
        ...

    def find_by_domain(self, domain: str, user_id: int | None = None) -> Order | None:
        """Return the most recent order for *domain*, optionally per user."""
        ...

    def find_active_by_domain(
        self,
        user_id: int,
        domain: str,
        exclude_id: int | None = None,
    ) -> Order | None:
        """Return a non-issued order of *user_id* claiming *domain*."""
        ...

    def find_blank_created(self, user_id: int) -> Order | None:
        """Return a ``created`` order of *user_id* with no domain yet."""
        ...

    def list_for_user(self, user_id: int) -> list[Order]:
        """Return all orders of *user_id*, newest first."""
        ...

    def create(
        self,
        *,
        user_id: int,
        domain: str = "",
        cert_type: CertType | None = None,
    ) -> Order: ...

    def update(self, order_id: int, **fields: Any) -> Order: ...


class ActionLogRepository(Protocol):
    def append(self, user_id: int, action: str, detail: str) -> ActionLogEntry: ...
