"""Per-order transition locks.

Two updates for the same order (a double tap on *verify*, a retried
webhook delivery) must not drive the issuance tool concurrently.
:class:`OrderLocks` hands out one :class:`threading.Lock` per order id
and forgets it once no thread holds or waits for it.  Locks are
process-local; they do not coordinate gunicorn workers.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class OrderLocks:
    """Registry of per-order locks, created lazily and dropped when idle."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, _Entry] = {}

    def _acquire_entry(self, order_id: int) -> _Entry:
        with self._guard:
            entry = self._locks.get(order_id)
            if entry is None:
                entry = _Entry()
                self._locks[order_id] = entry
            entry.users += 1
            return entry

    def _release_entry(self, order_id: int, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[order_id]

    @contextmanager
    def hold(self, order_id: int) -> Iterator[None]:
        """Block until the lock for *order_id* is held, release on exit."""
        entry = self._acquire_entry(order_id)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(order_id, entry)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
