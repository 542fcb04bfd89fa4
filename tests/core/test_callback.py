"""Unit tests for tgcert.core.callback."""

from __future__ import annotations

import pytest

from tgcert.core.callback import CallbackAction, CallbackDecodeError
from tgcert.core.types import CallbackKind, CertType


class TestEncode:
    def test_type(self):
        action = CallbackAction(CallbackKind.TYPE, order_id=12, cert_type=CertType.ROOT)
        assert action.encode() == "type:root:12"

    def test_verify(self):
        assert CallbackAction(CallbackKind.VERIFY, order_id=12).encode() == "verify:12"

    def test_menu(self):
        assert CallbackAction(CallbackKind.MENU, target="orders").encode() == "menu:orders"


class TestDecode:
    def test_type(self):
        action = CallbackAction.decode("type:wildcard:5")
        assert action.kind is CallbackKind.TYPE
        assert action.cert_type is CertType.WILDCARD
        assert action.order_id == 5

    @pytest.mark.parametrize("kind", ["verify", "later", "download", "info"])
    def test_order_actions(self, kind):
        action = CallbackAction.decode(f"{kind}:42")
        assert action.kind == kind
        assert action.order_id == 42

    def test_menu_orders(self):
        action = CallbackAction.decode("menu:orders")
        assert action.kind is CallbackKind.MENU
        assert action.order_id is None

    def test_encode_decode_agree(self):
        action = CallbackAction(CallbackKind.TYPE, order_id=9, cert_type=CertType.WILDCARD)
        assert CallbackAction.decode(action.encode()) == action

    @pytest.mark.parametrize(
        "data",
        [
            "",
            "delete:1",
            "verify",
            "verify:",
            "verify:abc",
            "verify:0",
            "verify:-3",
            "verify:²",
            "verify:١٢",
            "verify:1:2",
            "type:root",
            "type:ecdsa:1",
            "type:root:x",
            "menu:settings",
            "menu",
        ],
    )
    def test_rejects_malformed(self, data):
        with pytest.raises(CallbackDecodeError):
            CallbackAction.decode(data)

    def test_decode_error_is_value_error(self):
        assert issubclass(CallbackDecodeError, ValueError)
