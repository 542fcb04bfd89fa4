"""Repository layer for tgcert.

:mod:`tgcert.repositories.base` declares the contracts; the in-memory
and PostgreSQL backends implement them.
"""

from tgcert.repositories.base import ActionLogRepository, OrderRepository, UserRepository
from tgcert.repositories.memory import (
    InMemoryActionLogRepository,
    InMemoryOrderRepository,
    InMemoryUserRepository,
)
from tgcert.repositories.postgres import (
    PostgresActionLogRepository,
    PostgresOrderRepository,
    PostgresUserRepository,
)

__all__ = [
    "ActionLogRepository",
    "InMemoryActionLogRepository",
    "InMemoryOrderRepository",
    "InMemoryUserRepository",
    "OrderRepository",
    "PostgresActionLogRepository",
    "PostgresOrderRepository",
    "PostgresUserRepository",
    "UserRepository",
]
