"""Unit tests for tgcert.core.types."""

from __future__ import annotations

from tgcert.core.types import (
    PRIVILEGED_ROLES,
    AuditAction,
    CallbackKind,
    CertType,
    OrderStatus,
    PendingAction,
    UserRole,
)


class TestEnums:
    def test_values_are_plain_strings(self):
        assert OrderStatus("dns_wait") is OrderStatus.DNS_WAIT
        assert f"{CertType.WILDCARD}" == "wildcard"

    def test_pending_none_is_empty_string(self):
        assert PendingAction.NONE == ""
        assert not PendingAction.NONE

    def test_privileged_roles(self):
        assert UserRole.OWNER in PRIVILEGED_ROLES
        assert UserRole.ADMIN in PRIVILEGED_ROLES
        assert UserRole.MEMBER not in PRIVILEGED_ROLES

    def test_callback_kinds(self):
        assert {k.value for k in CallbackKind} == {
            "type",
            "verify",
            "later",
            "download",
            "info",
            "menu",
        }

    def test_audit_action_tags(self):
        assert AuditAction.ORDER_STATUS_CHANGE == "order_status_change"
        assert AuditAction.ACME_DRY_RUN == "acme_issue_dry_run"
        assert AuditAction.ACME_INSTALL == "acme_install_cert"
