"""Service layer.

Services hold the order lifecycle rules and delegate persistence to
the repository protocols.
"""

from tgcert.services.domain import DomainRejected, DomainValidator
from tgcert.services.order import OrderStateMachine
from tgcert.services.quota import QuotaPolicy
from tgcert.services.results import (
    DnsNotPropagatedYet,
    DuplicateOrder,
    ExternalToolFailure,
    Failure,
    NotFound,
    OrderResult,
    QuotaExhausted,
    StateGuardViolation,
    Success,
    ValidationFailed,
)
from tgcert.services.user import UserService

__all__ = [
    "DnsNotPropagatedYet",
    "DomainRejected",
    "DomainValidator",
    "DuplicateOrder",
    "ExternalToolFailure",
    "Failure",
    "NotFound",
    "OrderResult",
    "OrderStateMachine",
    "QuotaExhausted",
    "QuotaPolicy",
    "StateGuardViolation",
    "Success",
    "UserService",
    "ValidationFailed",
]
