"""Dependency injection container for tgcert.

Created once during application startup and stored on the Flask app
via ``app.extensions["container"]``.  Accessible from any request
context with :func:`get_container`.

Usage::

    from tgcert.app.context import get_container

    c = get_container()
    c.dispatcher.dispatch(update)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flask import current_app

from tgcert.acme.acmesh import AcmeShOrchestrator
from tgcert.bot.dispatcher import BotDispatcher
from tgcert.bot.telegram import TelegramClient
from tgcert.challenge.resolver import DnsChallengeResolver
from tgcert.core.locks import OrderLocks
from tgcert.logging.audit import AuditTrail
from tgcert.messages.formatter import MessageFormatter
from tgcert.repositories.memory import (
    InMemoryActionLogRepository,
    InMemoryOrderRepository,
    InMemoryUserRepository,
)
from tgcert.services.domain import DomainValidator
from tgcert.services.order import OrderStateMachine
from tgcert.services.quota import QuotaPolicy
from tgcert.services.user import UserService

if TYPE_CHECKING:
    from tgcert.acme.base import AcmeOrchestrator
    from tgcert.config.settings import TgcertSettings
    from pypgkit import Database
    from tgcert.repositories.base import (
        ActionLogRepository,
        OrderRepository,
        UserRepository,
    )

log = logging.getLogger(__name__)


class Container:
    """Application-wide dependency container.

    Picks the repository backend from ``database.backend``.  With the
    ``postgres`` backend a :class:`Database` is opened from settings
    unless one is passed in.  *acme*, *resolver* and *telegram* may be
    injected to replace the real adapters.
    """

    def __init__(  # noqa: PLR0913
        self,
        settings: TgcertSettings,
        db: Database | None = None,
        *,
        acme: AcmeOrchestrator | None = None,
        resolver: DnsChallengeResolver | None = None,
        telegram: TelegramClient | None = None,
    ) -> None:
        self.settings = settings
        self.db = db

        # -- Repositories --------------------------------------------------
        self.users: UserRepository
        self.orders: OrderRepository
        self.action_logs: ActionLogRepository

        if settings.database.backend == "postgres":
            from tgcert.repositories.postgres import (  # noqa: PLC0415
                PostgresActionLogRepository,
                PostgresOrderRepository,
                PostgresUserRepository,
            )

            if self.db is None:
                from tgcert.db.init import init_database  # noqa: PLC0415

                self.db = init_database(settings.database)
            self.users = PostgresUserRepository(self.db)
            self.orders = PostgresOrderRepository(self.db)
            self.action_logs = PostgresActionLogRepository(self.db)
        else:
            self.users = InMemoryUserRepository()
            self.orders = InMemoryOrderRepository()
            self.action_logs = InMemoryActionLogRepository()

        # -- Adapters ------------------------------------------------------
        self.acme: AcmeOrchestrator = acme or AcmeShOrchestrator(settings.acme)
        self.resolver = resolver or DnsChallengeResolver(settings.dns)
        self.telegram = telegram or TelegramClient(settings.telegram)

        # -- Services ------------------------------------------------------
        self.audit = AuditTrail(self.action_logs)
        self.quota = QuotaPolicy(self.users)
        self.validator = DomainValidator()
        self.locks = OrderLocks()
        self.formatter = MessageFormatter(
            settings.acme.export_path,
            templates_path=settings.messages.templates_path,
        )
        self.user_service = UserService(
            self.users,
            self.audit,
            settings.telegram,
            settings.quota,
        )
        self.machine = OrderStateMachine(
            self.users,
            self.orders,
            self.audit,
            self.quota,
            self.validator,
            self.resolver,
            self.acme,
            self.formatter,
            settings.acme.export_path,
            self.locks,
            refund_on_dry_run_failure=settings.quota.refund_on_dry_run_failure,
        )
        self.dispatcher = BotDispatcher(self.user_service, self.machine, self.formatter)

        log.debug("Container wired with %s backend", settings.database.backend)


def get_container() -> Container:
    """Return the :class:`Container` of the current Flask app."""
    container = current_app.extensions.get("container")
    if container is None:
        msg = "Dependency container not available -- was create_app() used?"
        raise RuntimeError(msg)
    return container
