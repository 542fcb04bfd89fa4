"""Outcomes of order operations.

Every public :class:`~tgcert.services.order.OrderStateMachine`
operation returns either a :class:`Success` or one of the
:class:`Failure` variants below, so callers can pattern-match::

    match machine.submit_domain(user.id, text):
        case Success(order=order, reply=reply):
            ...
        case DuplicateOrder(order=existing):
            ...
        case Failure(message=message):
            ...

Failures are scoped to one request; nothing here is fatal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from tgcert.messages.formatter import Reply
    from tgcert.models import Order


@dataclass(frozen=True)
class Success:
    """Operation succeeded; *reply* is ready to send."""

    reply: Reply
    order: Order | None = None
    extra: tuple[Reply, ...] = ()

    ok: ClassVar[bool] = True

    @property
    def message(self) -> str:
        return self.reply.text

    @property
    def replies(self) -> tuple[Reply, ...]:
        return (self.reply, *self.extra)


@dataclass(frozen=True)
class Failure:
    """Base class of every failed outcome."""

    message: str
    order: Order | None = None

    ok: ClassVar[bool] = False
    kind: ClassVar[str] = "failure"


@dataclass(frozen=True)
class ValidationFailed(Failure):
    """Bad domain or certificate type; the user can correct it."""

    kind: ClassVar[str] = "validation_error"


@dataclass(frozen=True)
class QuotaExhausted(Failure):
    kind: ClassVar[str] = "quota_exhausted"


@dataclass(frozen=True)
class StateGuardViolation(Failure):
    """Operation not legal for the order's (or user's) current state."""

    kind: ClassVar[str] = "state_guard_violation"


@dataclass(frozen=True)
class DuplicateOrder(Failure):
    """Another non-issued order of the user already claims the domain.

    ``order`` is the conflicting order and ``message`` its status.
    """

    kind: ClassVar[str] = "duplicate_order"


@dataclass(frozen=True)
class ExternalToolFailure(Failure):
    """Dry-run, renew or install failed; ``output`` is the tool's text."""

    output: str = ""

    kind: ClassVar[str] = "external_tool_failure"


@dataclass(frozen=True)
class DnsNotPropagatedYet(Failure):
    """TXT record not visible yet; retry later, nothing changed."""

    kind: ClassVar[str] = "dns_not_propagated"


@dataclass(frozen=True)
class NotFound(Failure):
    kind: ClassVar[str] = "not_found"


OrderResult = Success | Failure
