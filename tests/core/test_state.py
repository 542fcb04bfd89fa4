"""Unit tests for tgcert.core.state: the order state machine table."""

from __future__ import annotations

import logging

import pytest

from tgcert.core.state import (
    ORDER_TRANSITIONS,
    RETRYABLE_STATUSES,
    VERIFIABLE_STATUSES,
    assert_transition,
    log_transition,
)
from tgcert.core.types import OrderStatus

# ---------------------------------------------------------------------------
# TestOrderTransitions
# ---------------------------------------------------------------------------


class TestOrderTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.CREATED, OrderStatus.DNS_WAIT),
            (OrderStatus.DNS_WAIT, OrderStatus.DNS_VERIFIED),
            (OrderStatus.DNS_WAIT, OrderStatus.CREATED),
            (OrderStatus.DNS_VERIFIED, OrderStatus.ISSUED),
        ],
    )
    def test_valid_transitions(self, current, target):
        assert_transition(current, target, ORDER_TRANSITIONS)  # no exception

    def test_issued_is_terminal(self):
        for target in OrderStatus:
            with pytest.raises(ValueError, match="Invalid transition"):
                assert_transition(OrderStatus.ISSUED, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.CREATED, OrderStatus.ISSUED),
            (OrderStatus.CREATED, OrderStatus.DNS_VERIFIED),
            (OrderStatus.DNS_WAIT, OrderStatus.ISSUED),
            (OrderStatus.DNS_VERIFIED, OrderStatus.CREATED),
            (OrderStatus.DNS_VERIFIED, OrderStatus.DNS_WAIT),
        ],
    )
    def test_skips_and_retreats_rejected(self, current, target):
        with pytest.raises(ValueError, match="Invalid transition"):
            assert_transition(current, target)

    def test_self_loop_rejected(self):
        with pytest.raises(ValueError, match="Invalid transition"):
            assert_transition(OrderStatus.DNS_WAIT, OrderStatus.DNS_WAIT)

    def test_unknown_status(self):
        with pytest.raises(ValueError, match="Unknown status"):
            assert_transition("bogus", OrderStatus.ISSUED, ORDER_TRANSITIONS)

    def test_terminal_message_mentions_terminal(self):
        with pytest.raises(ValueError, match="terminal"):
            assert_transition(OrderStatus.ISSUED, OrderStatus.CREATED)

    def test_verifiable_statuses(self):
        assert VERIFIABLE_STATUSES == {OrderStatus.DNS_WAIT, OrderStatus.DNS_VERIFIED}

    def test_retry_targets_are_legal(self):
        assert RETRYABLE_STATUSES == {OrderStatus.CREATED, OrderStatus.DNS_WAIT}
        for status in RETRYABLE_STATUSES - {OrderStatus.CREATED}:
            assert_transition(status, OrderStatus.CREATED)


# ---------------------------------------------------------------------------
# TestLogTransition
# ---------------------------------------------------------------------------


class TestLogTransition:
    def test_emits_structured_record(self, caplog):
        with caplog.at_level(logging.INFO, logger="tgcert.core.state"):
            log_transition(7, OrderStatus.CREATED, OrderStatus.DNS_WAIT, domain="example.com")

        record = caplog.records[-1]
        assert record.getMessage() == "order 7: created -> dns_wait"
        assert record.resource_id == "7"
        assert record.from_status == "created"
        assert record.to_status == "dns_wait"
        assert record.domain == "example.com"

    def test_reason_appended(self, caplog):
        with caplog.at_level(logging.INFO, logger="tgcert.core.state"):
            log_transition(3, "dns_wait", "created", reason="dry-run failed")

        record = caplog.records[-1]
        assert "(dry-run failed)" in record.getMessage()
        assert record.reason == "dry-run failed"
        assert not hasattr(record, "domain")
