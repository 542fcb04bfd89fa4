"""Unit tests for tgcert.models."""

from __future__ import annotations

import dataclasses

import pytest

from tgcert.core.types import CertType, OrderStatus, PendingAction, UserRole
from tgcert.models import Order, TxtChallenge, User


class TestUser:
    def test_defaults(self):
        user = User(id=1, external_id=42)
        assert user.role is UserRole.MEMBER
        assert user.apply_quota == 0
        assert user.pending_action is PendingAction.NONE
        assert user.pending_order_id is None
        assert not user.awaiting_domain

    @pytest.mark.parametrize(
        "role,privileged",
        [(UserRole.OWNER, True), (UserRole.ADMIN, True), (UserRole.MEMBER, False)],
    )
    def test_is_privileged(self, role, privileged):
        assert User(id=1, external_id=1, role=role).is_privileged is privileged

    def test_awaiting_domain(self):
        user = User(id=1, external_id=1, pending_action=PendingAction.AWAIT_DOMAIN)
        assert user.awaiting_domain

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            User(id=1, external_id=1).apply_quota = 5  # type: ignore[misc]


class TestOrder:
    def test_blank_order(self):
        order = Order(id=1, user_id=1)
        assert order.domain == ""
        assert order.cert_type is None
        assert order.status is OrderStatus.CREATED
        assert order.challenge is None

    def test_challenge_requires_host_and_value(self):
        assert Order(id=1, user_id=1, txt_host="_acme-challenge.a.com").challenge is None
        order = Order(id=1, user_id=1, txt_host="_acme-challenge.a.com", txt_value="v")
        assert order.challenge == TxtChallenge("_acme-challenge.a.com", "v")

    def test_acme_domains_root(self):
        order = Order(id=1, user_id=1, domain="example.com", cert_type=CertType.ROOT)
        assert order.acme_domains == ["example.com"]

    def test_acme_domains_wildcard(self):
        order = Order(id=1, user_id=1, domain="example.com", cert_type=CertType.WILDCARD)
        assert order.acme_domains == ["example.com", "*.example.com"]

    def test_acme_domains_without_type(self):
        assert Order(id=1, user_id=1, domain="example.com").acme_domains == ["example.com"]
