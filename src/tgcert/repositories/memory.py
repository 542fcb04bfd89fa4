"""In-process repositories.

Used by the default ``memory`` database backend and by the test suite.
Every table is guarded by its own lock so concurrent webhook requests
observe read-your-writes consistency.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import fields, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from tgcert.core.types import OrderStatus
from tgcert.models import ActionLogEntry, Order, User

if TYPE_CHECKING:
    from collections.abc import Callable

    from tgcert.core.types import CertType, UserRole

T = TypeVar("T")

_IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})


def _now() -> datetime:
    return datetime.now(UTC)


class _Table(Generic[T]):
    """Auto-incrementing id → entity map."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.rows: dict[int, T] = {}
        self._ids = itertools.count(1)

    def next_id(self) -> int:
        return next(self._ids)

    def select(self, predicate: Callable[[T], bool]) -> list[T]:
        with self.lock:
            return [row for row in self.rows.values() if predicate(row)]


def _check_fields(entity_cls: type, changes: dict[str, Any]) -> None:
    known = {f.name for f in fields(entity_cls)} - _IMMUTABLE_FIELDS
    unknown = set(changes) - known
    if unknown:
        msg = f"Unknown or immutable {entity_cls.__name__} field(s): {sorted(unknown)}"
        raise ValueError(msg)


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._table: _Table[User] = _Table()

    def find_by_id(self, user_id: int) -> User | None:
        with self._table.lock:
            return self._table.rows.get(user_id)

    def find_by_external_id(self, external_id: int) -> User | None:
        matches = self._table.select(lambda u: u.external_id == external_id)
        return matches[0] if matches else None

    def create(
        self,
        *,
        external_id: int,
        role: UserRole,
        apply_quota: int,
        username: str | None = None,
    ) -> User:
        now = _now()
        with self._table.lock:
            user = User(
                id=self._table.next_id(),
                external_id=external_id,
                role=role,
                apply_quota=apply_quota,
                username=username,
                created_at=now,
                updated_at=now,
            )
            self._table.rows[user.id] = user
        return user

    def update(self, user_id: int, **changes: Any) -> User:
        _check_fields(User, changes)
        with self._table.lock:
            current = self._table.rows.get(user_id)
            if current is None:
                msg = f"User {user_id} does not exist"
                raise KeyError(msg)
            updated = replace(current, **changes, updated_at=_now())
            self._table.rows[user_id] = updated
        return updated

    def count(self) -> int:
        with self._table.lock:
            return len(self._table.rows)


class InMemoryOrderRepository:
    def __init__(self) -> None:
        self._table: _Table[Order] = _Table()

    def find_by_id(self, order_id: int) -> Order | None:
        with self._table.lock:
            return self._table.rows.get(order_id)

    def find_for_user(self, order_id: int, user_id: int) -> Order | None:
        order = self.find_by_id(order_id)
        if order is None or order.user_id != user_id:
            return None
        return order

    def find_by_domain(self, domain: str, user_id: int | None = None) -> Order | None:
        matches = self._table.select(
            lambda o: o.domain == domain and (user_id is None or o.user_id == user_id),
        )
        return max(matches, key=lambda o: o.id) if matches else None

    def find_active_by_domain(
        self,
        user_id: int,
        domain: str,
        exclude_id: int | None = None,
    ) -> Order | None:
        matches = self._table.select(
            lambda o: (
                o.user_id == user_id
                and o.domain == domain
                and o.status is not OrderStatus.ISSUED
                and o.id != exclude_id
            ),
        )
        return min(matches, key=lambda o: o.id) if matches else None

    def find_blank_created(self, user_id: int) -> Order | None:
        matches = self._table.select(
            lambda o: o.user_id == user_id and o.status is OrderStatus.CREATED and o.domain == "",
        )
        return min(matches, key=lambda o: o.id) if matches else None

    def list_for_user(self, user_id: int) -> list[Order]:
        matches = self._table.select(lambda o: o.user_id == user_id)
        return sorted(matches, key=lambda o: o.id, reverse=True)

    def create(
        self,
        *,
        user_id: int,
        domain: str = "",
        cert_type: CertType | None = None,
    ) -> Order:
        now = _now()
        with self._table.lock:
            order = Order(
                id=self._table.next_id(),
                user_id=user_id,
                domain=domain,
                cert_type=cert_type,
                created_at=now,
                updated_at=now,
            )
            self._table.rows[order.id] = order
        return order

    def update(self, order_id: int, **changes: Any) -> Order:
        _check_fields(Order, changes)
        with self._table.lock:
            current = self._table.rows.get(order_id)
            if current is None:
                msg = f"Order {order_id} does not exist"
                raise KeyError(msg)
            updated = replace(current, **changes, updated_at=_now())
            self._table.rows[order_id] = updated
        return updated


class InMemoryActionLogRepository:
    def __init__(self) -> None:
        self._table: _Table[ActionLogEntry] = _Table()

    def append(self, user_id: int, action: str, detail: str) -> ActionLogEntry:
        with self._table.lock:
            entry = ActionLogEntry(
                id=self._table.next_id(),
                user_id=user_id,
                action=action,
                detail=detail,
                created_at=_now(),
            )
            self._table.rows[entry.id] = entry
        return entry

    @property
    def entries(self) -> list[ActionLogEntry]:
        with self._table.lock:
            return list(self._table.rows.values())
