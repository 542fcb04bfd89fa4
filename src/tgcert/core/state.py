"""Certificate order state machine.

Defines the valid status transitions for orders.  All transitions are
enforced via :func:`assert_transition`.

Usage::

    from tgcert.core.state import ORDER_TRANSITIONS, assert_transition
    from tgcert.core.types import OrderStatus

    assert_transition(
        OrderStatus.CREATED, OrderStatus.DNS_WAIT,
        ORDER_TRANSITIONS,
    )
"""

from __future__ import annotations

import logging

from tgcert.core.types import OrderStatus

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Order: created → dns_wait, dns_wait → dns_verified, dns_wait → created
#        (a retried dry-run failed), dns_verified → issued.  issued is
#        terminal.
# ---------------------------------------------------------------------------

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CREATED: frozenset({OrderStatus.DNS_WAIT}),
    OrderStatus.DNS_WAIT: frozenset({OrderStatus.DNS_VERIFIED, OrderStatus.CREATED}),
    OrderStatus.DNS_VERIFIED: frozenset({OrderStatus.ISSUED}),
    OrderStatus.ISSUED: frozenset(),
}

# Statuses from which the dry-run may be retried.
RETRYABLE_STATUSES = frozenset({OrderStatus.CREATED, OrderStatus.DNS_WAIT})

# Statuses from which verification (renew + install) may run.
VERIFIABLE_STATUSES = frozenset({OrderStatus.DNS_WAIT, OrderStatus.DNS_VERIFIED})


def assert_transition(
    current: OrderStatus,
    target: OrderStatus,
    table: dict = ORDER_TRANSITIONS,
) -> None:
    """Raise :class:`ValueError` if *current* → *target* is not allowed.

    Parameters
    ----------
    current:
        The current status of the order.
    target:
        The desired new status.
    table:
        Transition table, :data:`ORDER_TRANSITIONS` by default.

    """
    allowed = table.get(current)
    if allowed is None:
        msg = f"Unknown status {current!r}"
        raise ValueError(msg)
    if target not in allowed:
        msg = (
            f"Invalid transition {current.value!r} -> {target.value!r}; "
            f"allowed targets: {sorted(s.value for s in allowed) or '(terminal)'}"
        )
        raise ValueError(msg)


def log_transition(
    resource_id,
    from_status,
    to_status,
    *,
    domain: str | None = None,
    reason: str | None = None,
) -> None:
    """Emit a structured log entry for an order state transition."""
    extra = {
        "event": "state_transition",
        "resource_type": "order",
        "resource_id": str(resource_id),
        "from_status": from_status.value if hasattr(from_status, "value") else str(from_status),
        "to_status": to_status.value if hasattr(to_status, "value") else str(to_status),
    }
    if domain:
        extra["domain"] = domain
    if reason:
        extra["reason"] = reason
    log.info(
        "order %s: %s -> %s%s",
        resource_id,
        extra["from_status"],
        extra["to_status"],
        f" ({reason})" if reason else "",
        extra=extra,
    )
