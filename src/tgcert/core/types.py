"""Enumerated types shared by the tgcert core.

All enums inherit from ``StrEnum`` so their ``.value`` is a plain
string that the repositories store as TEXT and callback data can
carry verbatim.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


class UserRole(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


PRIVILEGED_ROLES = frozenset({UserRole.OWNER, UserRole.ADMIN})


class PendingAction(StrEnum):
    NONE = ""
    AWAIT_DOMAIN = "await_domain"


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------


class OrderStatus(StrEnum):
    CREATED = "created"
    DNS_WAIT = "dns_wait"
    DNS_VERIFIED = "dns_verified"
    ISSUED = "issued"


class CertType(StrEnum):
    ROOT = "root"
    WILDCARD = "wildcard"


# ---------------------------------------------------------------------------
# Callback actions (inline keyboard buttons)
# ---------------------------------------------------------------------------


class CallbackKind(StrEnum):
    TYPE = "type"
    VERIFY = "verify"
    RETRY = "retry"
    LATER = "later"
    DOWNLOAD = "download"
    INFO = "info"
    MENU = "menu"


# ---------------------------------------------------------------------------
# Audit log action tags
# ---------------------------------------------------------------------------


class AuditAction(StrEnum):
    USER_REGISTERED = "user_register"
    ORDER_CREATED = "order_create"
    ORDER_STATUS_CHANGE = "order_status_change"
    ORDER_ISSUED = "order_issued"
    ACME_DRY_RUN = "acme_issue_dry_run"
    ACME_RENEW = "acme_renew"
    ACME_INSTALL = "acme_install_cert"
