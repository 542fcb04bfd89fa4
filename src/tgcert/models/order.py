"""Certificate order entity and TXT challenge value object."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from tgcert.core.types import CertType, OrderStatus

_EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class TxtChallenge:
    """DNS-01 TXT record the user must publish (not persisted standalone)."""

    name: str
    value: str


@dataclass(frozen=True)
class Order:
    id: int
    user_id: int
    domain: str = ""
    cert_type: CertType | None = None
    status: OrderStatus = OrderStatus.CREATED
    txt_host: str = ""
    txt_value: str = ""
    cert_path: str = ""
    key_path: str = ""
    fullchain_path: str = ""
    acme_output: str = ""
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH

    @property
    def challenge(self) -> TxtChallenge | None:
        if self.txt_host and self.txt_value:
            return TxtChallenge(name=self.txt_host, value=self.txt_value)
        return None

    @property
    def acme_domains(self) -> list[str]:
        """Domain set passed to the issuance tool."""
        if self.cert_type is CertType.WILDCARD:
            return [self.domain, f"*.{self.domain}"]
        return [self.domain]
