"""Order service: the certificate order lifecycle.

An order moves ``created -> dns_wait -> dns_verified -> issued``.  A
failed dry-run leaves it in (or returns it to) ``created``, from where
:meth:`OrderStateMachine.retry_order` runs it again; failed renew/install
calls leave the status untouched so the user can simply press *verify*
again.

Every public operation returns an :data:`~tgcert.services.results.OrderResult`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from tgcert.acme.base import export_paths
from tgcert.core.certinfo import read_certificate_info
from tgcert.core.locks import OrderLocks
from tgcert.core.state import (
    RETRYABLE_STATUSES,
    VERIFIABLE_STATUSES,
    assert_transition,
    log_transition,
)
from tgcert.core.types import AuditAction, CertType, OrderStatus, PendingAction
from tgcert.messages.formatter import Reply
from tgcert.services.domain import DomainRejected
from tgcert.services.results import (
    DnsNotPropagatedYet,
    DuplicateOrder,
    ExternalToolFailure,
    NotFound,
    QuotaExhausted,
    StateGuardViolation,
    Success,
    ValidationFailed,
)

if TYPE_CHECKING:
    from tgcert.acme.base import AcmeOrchestrator
    from tgcert.challenge.resolver import DnsChallengeResolver
    from tgcert.logging.audit import AuditTrail
    from tgcert.messages.formatter import MessageFormatter
    from tgcert.models import Order, User
    from tgcert.repositories.base import OrderRepository, UserRepository
    from tgcert.services.domain import DomainValidator
    from tgcert.services.quota import QuotaPolicy
    from tgcert.services.results import OrderResult

log = logging.getLogger(__name__)

ORDER_NOT_FOUND = "❌ Order not found."
UNKNOWN_USER = "❌ Unknown user, please send /start first."
NOT_ISSUED = "⚠️ The certificate has not been issued yet."


class OrderStateMachine:
    """Own every legal order transition and the reply for each one."""

    def __init__(  # noqa: PLR0913
        self,
        users: UserRepository,
        orders: OrderRepository,
        audit: AuditTrail,
        quota: QuotaPolicy,
        validator: DomainValidator,
        resolver: DnsChallengeResolver,
        acme: AcmeOrchestrator,
        formatter: MessageFormatter,
        export_root: str,
        locks: OrderLocks | None = None,
        *,
        refund_on_dry_run_failure: bool = False,
    ) -> None:
        self._users = users
        self._orders = orders
        self._audit = audit
        self._quota = quota
        self._validator = validator
        self._resolver = resolver
        self._acme = acme
        self._formatter = formatter
        self._export_root = export_root
        self._locks = locks if locks is not None else OrderLocks()
        self._refund_on_dry_run_failure = refund_on_dry_run_failure

    # ------------------------------------------------------------------
    # Two-step path: /new -> type button -> domain text
    # ------------------------------------------------------------------

    def start_order(self, user: User) -> OrderResult:
        """Open (or reuse) a blank ``created`` order and ask for its type.

        A reused order whose type is already chosen goes straight back to
        the domain prompt; the type of an order is set once.
        """
        user = self._users.find_by_id(user.id)
        if user is None:
            return NotFound(UNKNOWN_USER)
        if not self._quota.has_quota(user):
            return QuotaExhausted(self._quota.exhausted_message(user))

        order = self._orders.find_blank_created(user.id)
        if order is None:
            order = self._orders.create(user_id=user.id)
            log.info("User %s opened order %s", user.id, order.id)
        elif order.cert_type is not None:
            self._await_domain(user.id, order)
            return Success(self._formatter.domain_prompt(order), order)
        return Success(self._formatter.type_prompt(order), order)

    def set_order_type(
        self,
        user_id: int,
        order_id: int,
        cert_type: CertType | str,
    ) -> OrderResult:
        order = self._orders.find_for_user(order_id, user_id)
        if order is None:
            return NotFound(ORDER_NOT_FOUND)
        if order.status is not OrderStatus.CREATED or order.domain or order.cert_type is not None:
            return StateGuardViolation(
                "⚠️ The certificate type has already been chosen for this order.",
                order,
            )
        try:
            cert_type = CertType(cert_type)
        except ValueError:
            return ValidationFailed("❌ Unknown certificate type.", order)

        order = self._orders.update(order.id, cert_type=cert_type)
        self._await_domain(user_id, order)
        return Success(self._formatter.domain_prompt(order), order)

    def submit_domain(self, user_id: int, domain: str) -> OrderResult:
        """Attach *domain* to the user's pending order and run the dry-run."""
        user = self._users.find_by_id(user_id)
        if user is None:
            return NotFound(UNKNOWN_USER)
        if not self._quota.has_quota(user):
            return QuotaExhausted(self._quota.exhausted_message(user))

        if not user.awaiting_domain or user.pending_order_id is None:
            self._clear_pending(user)
            return StateGuardViolation(
                "⚠️ There is no order waiting for a domain, please start with /new.",
            )

        order = self._orders.find_for_user(user.pending_order_id, user.id)
        if order is None:
            self._clear_pending(user)
            return NotFound(ORDER_NOT_FOUND)
        if order.status is not OrderStatus.CREATED:
            self._clear_pending(user)
            return StateGuardViolation(
                "⚠️ A domain can no longer be submitted for this order.",
                order,
            )
        if order.domain:
            self._clear_pending(user)
            return StateGuardViolation("⚠️ This order already has a domain.", order)

        try:
            normalized = self._validator.validate(domain, order.cert_type)
        except DomainRejected as exc:
            return ValidationFailed(exc.detail, order)

        duplicate = self._find_duplicate(user, normalized, exclude_id=order.id)
        if duplicate is not None:
            return duplicate

        order = self._orders.update(order.id, domain=normalized)
        user = self._clear_pending(user)
        user = self._commit_attempt(user, order)
        return self.issue_order(user, order)

    # ------------------------------------------------------------------
    # Single-call path: /domain example.com
    # ------------------------------------------------------------------

    def create_order(self, user: User, domain: str) -> OrderResult:
        """Create a root-type order already carrying *domain* and issue it."""
        try:
            normalized = self._validator.validate(domain, CertType.ROOT)
        except DomainRejected as exc:
            return ValidationFailed(exc.detail)

        user = self._users.find_by_id(user.id)
        if user is None:
            return NotFound(UNKNOWN_USER)
        if not self._quota.has_quota(user):
            return QuotaExhausted(self._quota.exhausted_message(user))

        duplicate = self._find_duplicate(user, normalized)
        if duplicate is not None:
            return duplicate

        order = self._orders.create(
            user_id=user.id,
            domain=normalized,
            cert_type=CertType.ROOT,
        )
        user = self._commit_attempt(user, order)
        return self.issue_order(user, order)

    # ------------------------------------------------------------------
    # Issuance: dry-run and TXT challenge
    # ------------------------------------------------------------------

    def issue_order(self, user: User, order: Order) -> OrderResult:
        """Run the dry-run for *order* and move it to ``dns_wait``."""
        with self._locks.hold(order.id):
            current = self._orders.find_by_id(order.id)
            if current is None:
                return NotFound(ORDER_NOT_FOUND)
            if current.status is not OrderStatus.CREATED:
                return StateGuardViolation(
                    "⚠️ The TXT record can only be generated for a new order.",
                    current,
                )
            return self._issue_locked(user, current)

    def retry_order(self, user_id: int, order_id: int) -> OrderResult:
        """Run the dry-run again for an order that already has a domain.

        Recovers a ``created`` order whose dry-run failed, or regenerates
        the TXT record of a ``dns_wait`` order.  No quota is spent unless
        the failed attempt was refunded; then the retry is charged like a
        new submission.
        """
        with self._locks.hold(order_id):
            order = self._orders.find_for_user(order_id, user_id)
            if order is None:
                return NotFound(ORDER_NOT_FOUND)
            if order.status not in RETRYABLE_STATUSES or not order.domain:
                return StateGuardViolation(
                    "⚠️ Only an order with a failed dry-run or a pending TXT record "
                    "can be retried.",
                    order,
                )
            user = self._users.find_by_id(user_id)
            if user is None:
                return NotFound(UNKNOWN_USER)

            if self._refund_on_dry_run_failure and order.status is OrderStatus.CREATED:
                if not self._quota.has_quota(user):
                    return QuotaExhausted(self._quota.exhausted_message(user), order)
                user = self._quota.consume(user)

            log.info("User %s retries the dry-run of order %s", user_id, order_id)
            return self._issue_locked(user, order)

    def _issue_locked(self, user: User, order: Order) -> OrderResult:
        if not order.domain:
            return StateGuardViolation("⚠️ Please submit a domain first.", order)

        result = self._acme.dry_run(order.acme_domains)
        self._audit.record(user.id, AuditAction.ACME_DRY_RUN, result.output)

        if not result.success:
            log.warning("Dry-run failed for order %s (%s)", order.id, order.domain)
            order = self._transition(
                user.id,
                order,
                OrderStatus.CREATED,
                acme_output=result.output,
            )
            if self._refund_on_dry_run_failure:
                self._quota.refund(self._users.find_by_id(user.id) or user)
            return ExternalToolFailure(
                self._formatter.tool_failure("acme.sh dry-run failed:", result.output),
                order,
                output=result.output,
            )

        challenge = self._resolver.parse_challenge(result.output)
        if challenge is None:
            log.warning("No TXT challenge found in dry-run output for %s", order.domain)

        order = self._transition(
            user.id,
            order,
            OrderStatus.DNS_WAIT,
            txt_host=challenge.name if challenge else "",
            txt_value=challenge.value if challenge else "",
            acme_output=result.output,
        )
        reply = self._formatter.dns_instructions(
            order,
            challenge,
            output="" if challenge else result.output,
        )
        return Success(reply, order)

    # ------------------------------------------------------------------
    # Verification: DNS check, renew, install
    # ------------------------------------------------------------------

    def verify_order(self, order: Order) -> OrderResult:
        """Verify DNS for *order* and finish issuance.

        Holds the per-order lock for the whole run and works on a fresh
        copy of the order read after the lock was taken.
        """
        with self._locks.hold(order.id):
            current = self._orders.find_by_id(order.id)
            if current is None:
                return NotFound(ORDER_NOT_FOUND)
            return self._verify_locked(current)

    def verify_order_by_id(self, user_id: int, order_id: int) -> OrderResult:
        order = self._orders.find_for_user(order_id, user_id)
        if order is None:
            return NotFound(ORDER_NOT_FOUND)
        return self.verify_order(order)

    def verify_by_domain(self, user: User, domain: str) -> OrderResult:
        order = self._orders.find_by_domain(_normalize_lookup(domain), user.id)
        if order is None:
            return NotFound(ORDER_NOT_FOUND)
        return self.verify_order(order)

    def _verify_locked(self, order: Order) -> OrderResult:
        if order.status not in VERIFIABLE_STATUSES:
            return StateGuardViolation(
                "⚠️ This order cannot be verified now; finish the DNS step first.",
                order,
            )

        if order.status is OrderStatus.DNS_WAIT:
            challenge = order.challenge
            if challenge is not None and not self._resolver.verify_propagation(
                challenge.name,
                challenge.value,
            ):
                return DnsNotPropagatedYet(
                    "⏳ The TXT record is not visible yet; DNS may still be propagating. "
                    "This usually takes 1-10 minutes, sometimes longer.",
                    order,
                )
            order = self._transition(order.user_id, order, OrderStatus.DNS_VERIFIED)

        renew = self._acme.renew(order.acme_domains)
        self._audit.record(order.user_id, AuditAction.ACME_RENEW, renew.output)
        if not renew.success:
            order = self._orders.update(order.id, acme_output=renew.output)
            return ExternalToolFailure(
                self._formatter.tool_failure("Certificate issuance failed:", renew.output),
                order,
                output=renew.output,
            )

        install = self._acme.install_cert(order.domain)
        self._audit.record(order.user_id, AuditAction.ACME_INSTALL, install.output)
        if not install.success:
            order = self._orders.update(order.id, acme_output=install.output)
            return ExternalToolFailure(
                self._formatter.tool_failure("Certificate export failed:", install.output),
                order,
                output=install.output,
            )

        paths = export_paths(self._export_root, order.domain)
        order = self._transition(
            order.user_id,
            order,
            OrderStatus.ISSUED,
            cert_path=paths.cert,
            key_path=paths.key,
            fullchain_path=paths.fullchain,
        )
        self._audit.record(order.user_id, AuditAction.ORDER_ISSUED, order.domain)

        info = read_certificate_info(paths.cert)
        return Success(self._formatter.issued(order, info.expires_at), order)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def status(self, user: User, domain: str) -> OrderResult:
        order = self._orders.find_by_domain(_normalize_lookup(domain), user.id)
        if order is None:
            return NotFound(ORDER_NOT_FOUND)
        return Success(Reply(self._formatter.order_status(order)), order)

    def status_by_domain(self, domain: str) -> OrderResult:
        """Status of the latest order for *domain* across all users."""
        order = self._orders.find_by_domain(_normalize_lookup(domain))
        if order is None:
            return NotFound(ORDER_NOT_FOUND)
        return Success(Reply(self._formatter.order_status(order)), order)

    def list_orders(self, user: User) -> OrderResult:
        orders = self._orders.list_for_user(user.id)
        if not orders:
            return Success(self._formatter.no_orders())
        cards = tuple(self._formatter.order_card(order) for order in orders)
        return Success(self._formatter.orders_header(), extra=cards)

    def certificate_info(self, user_id: int, order_id: int) -> OrderResult:
        order = self._orders.find_for_user(order_id, user_id)
        if order is None:
            return NotFound(ORDER_NOT_FOUND)
        if order.status is not OrderStatus.ISSUED:
            return StateGuardViolation(NOT_ISSUED, order)
        info = read_certificate_info(self._formatter.paths_for(order).cert)
        return Success(self._formatter.certificate_info(order, info), order)

    def download_info(self, user_id: int, order_id: int) -> OrderResult:
        order = self._orders.find_for_user(order_id, user_id)
        if order is None:
            return NotFound(ORDER_NOT_FOUND)
        if order.status is not OrderStatus.ISSUED:
            return StateGuardViolation(NOT_ISSUED, order)
        return Success(self._formatter.download_info(order), order)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_duplicate(
        self,
        user: User,
        domain: str,
        exclude_id: int | None = None,
    ) -> DuplicateOrder | None:
        existing = self._orders.find_active_by_domain(user.id, domain, exclude_id=exclude_id)
        if existing is None:
            return None
        log.info("User %s already has order %s for %s", user.id, existing.id, domain)
        return DuplicateOrder(
            self._formatter.order_status(existing, with_tips=True),
            existing,
        )

    def _commit_attempt(self, user: User, order: Order) -> User:
        """Spend one quota unit for *order*; the only place quota is consumed."""
        self._audit.record(user.id, AuditAction.ORDER_CREATED, order.domain)
        return self._quota.consume(user)

    def _await_domain(self, user_id: int, order: Order) -> User:
        return self._users.update(
            user_id,
            pending_action=PendingAction.AWAIT_DOMAIN,
            pending_order_id=order.id,
        )

    def _clear_pending(self, user: User) -> User:
        if user.pending_action is PendingAction.NONE and user.pending_order_id is None:
            return user
        return self._users.update(
            user.id,
            pending_action=PendingAction.NONE,
            pending_order_id=None,
        )

    def _transition(
        self,
        user_id: int,
        order: Order,
        target: OrderStatus,
        **fields: Any,  # noqa: ANN401
    ) -> Order:
        """Validate, persist and log a status change of *order*."""
        if order.status is target:
            return self._orders.update(order.id, **fields) if fields else order

        assert_transition(order.status, target)
        updated = self._orders.update(order.id, status=target, **fields)
        log_transition(order.id, order.status, target, domain=order.domain)
        self._audit.status_change(user_id, order.domain, order.status, target)
        return updated


def _normalize_lookup(domain: str) -> str:
    return (domain or "").strip().lower().rstrip(".")
