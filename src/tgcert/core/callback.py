"""Inline-keyboard callback data.

Telegram hands back the ``callback_data`` string of a pressed button
verbatim.  tgcert uses a colon-delimited scheme::

    type:<root|wildcard>:<order_id>
    verify:<order_id>
    retry:<order_id>
    later:<order_id>
    download:<order_id>
    info:<order_id>
    menu:orders

:class:`CallbackAction` is the structured form; :meth:`CallbackAction.encode`
and :meth:`CallbackAction.decode` convert between the two.
"""

from __future__ import annotations

from dataclasses import dataclass

from tgcert.core.types import CallbackKind, CertType

# Telegram rejects callback_data longer than 64 bytes.
MAX_CALLBACK_DATA_BYTES = 64

MENU_ORDERS = "orders"


class CallbackDecodeError(ValueError):
    """Raised when callback data does not follow the colon scheme."""


@dataclass(frozen=True)
class CallbackAction:
    kind: CallbackKind
    order_id: int | None = None
    cert_type: CertType | None = None
    target: str | None = None

    def encode(self) -> str:
        if self.kind is CallbackKind.MENU:
            parts = [self.kind.value, self.target or MENU_ORDERS]
        elif self.kind is CallbackKind.TYPE:
            parts = [self.kind.value, self.cert_type.value, str(self.order_id)]
        else:
            parts = [self.kind.value, str(self.order_id)]
        data = ":".join(parts)
        if len(data.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
            msg = f"callback data exceeds {MAX_CALLBACK_DATA_BYTES} bytes: {data!r}"
            raise ValueError(msg)
        return data

    @classmethod
    def decode(cls, data: str) -> CallbackAction:
        """Parse *data* into a :class:`CallbackAction`.

        Raises :class:`CallbackDecodeError` for unknown actions, a
        missing or non-positive order id, or an unknown certificate
        type.
        """
        parts = (data or "").strip().split(":")
        try:
            kind = CallbackKind(parts[0])
        except ValueError as exc:
            msg = f"unknown callback action {parts[0]!r}"
            raise CallbackDecodeError(msg) from exc

        if kind is CallbackKind.MENU:
            target = parts[1] if len(parts) == 2 else ""
            if target != MENU_ORDERS:
                msg = f"unknown menu target in {data!r}"
                raise CallbackDecodeError(msg)
            return cls(kind=kind, target=target)

        if kind is CallbackKind.TYPE:
            if len(parts) != 3:
                msg = f"expected 'type:<cert_type>:<order_id>', got {data!r}"
                raise CallbackDecodeError(msg)
            try:
                cert_type = CertType(parts[1])
            except ValueError as exc:
                msg = f"unknown certificate type {parts[1]!r}"
                raise CallbackDecodeError(msg) from exc
            return cls(kind=kind, cert_type=cert_type, order_id=_parse_order_id(parts[2]))

        if len(parts) != 2:
            msg = f"expected '{kind.value}:<order_id>', got {data!r}"
            raise CallbackDecodeError(msg)
        return cls(kind=kind, order_id=_parse_order_id(parts[1]))


def _parse_order_id(raw: str) -> int:
    # str.isdigit also accepts non-ASCII digits such as superscripts.
    if not (raw.isascii() and raw.isdigit()):
        msg = f"order id must be a positive integer, got {raw!r}"
        raise CallbackDecodeError(msg)
    order_id = int(raw)
    if order_id <= 0:
        msg = f"order id must be a positive integer, got {raw!r}"
        raise CallbackDecodeError(msg)
    return order_id
