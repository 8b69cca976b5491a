"""
Action schema validation and wire form.
"""

import pytest

from hlsigner.actions import (
    L1_KINDS,
    USER_SIGNED_KINDS,
    Cancel,
    CancelWire,
    Modify,
    OrderWire,
    ScheduleCancel,
    SendAsset,
    UsdSend,
    Withdraw,
    action_kind,
    parse_l1_action,
    parse_user_signed_action,
    to_wire_decimal,
)
from hlsigner.errors import MalformedInputError

DEST = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
CLOID = "0x" + "ab" * 16


class TestWireDecimal:
    """Minimal decimal strings for prices and sizes."""

    @pytest.mark.parametrize("value,expected", [
        ("1.500", "1.5"),
        ("100", "100"),
        (100, "100"),
        (0.1, "0.1"),
        ("0.000", "0"),
        ("-0.0", "0"),
        ("0.00001000", "0.00001"),
    ])
    def test_normalization(self, value, expected):
        assert to_wire_decimal(value) == expected

    @pytest.mark.parametrize("value", ["abc", "NaN", "inf", True])
    def test_rejects_non_amounts(self, value):
        with pytest.raises(ValueError):
            to_wire_decimal(value)


class TestL1Actions:
    """L1 action parsing."""

    def test_kinds(self):
        assert {"order", "cancel", "modify", "updateLeverage", "vaultTransfer"} <= L1_KINDS
        assert USER_SIGNED_KINDS == {
            "approveBuilderFee", "usdClassTransfer", "usdSend", "spotSend", "sendAsset", "withdraw3",
        }
        assert not L1_KINDS & USER_SIGNED_KINDS

    def test_parse_by_alias(self):
        action = parse_l1_action({"type": "cancel", "cancels": [{"a": 4, "o": 123}]})
        assert isinstance(action, Cancel)
        assert action.cancels[0] == CancelWire(asset=4, oid=123)
        assert action.to_wire() == {"type": "cancel", "cancels": [{"a": 4, "o": 123}]}

    def test_model_passes_through(self):
        action = ScheduleCancel(time=1700000000000)
        assert parse_l1_action(action) is action

    def test_optional_fields_dropped(self):
        assert ScheduleCancel().to_wire() == {"type": "scheduleCancel"}

    def test_trigger_order_wire(self):
        order = OrderWire.trigger(2, False, "100", "1", trigger_px="99.50", tpsl="sl", cloid=CLOID.upper().replace("0X", "0x"))
        wire = order.to_wire()
        assert list(wire) == ["a", "b", "p", "s", "r", "t", "c"]
        assert list(wire["t"]["trigger"]) == ["isMarket", "triggerPx", "tpsl"]
        assert wire["t"]["trigger"]["triggerPx"] == "99.5"
        assert wire["c"] == CLOID

    def test_modify_by_cloid(self):
        modify = Modify(oid=CLOID, order=OrderWire.limit(1, True, "1", "1"))
        assert modify.to_wire()["oid"] == CLOID

    def test_bad_cloid(self):
        with pytest.raises(ValueError):
            OrderWire.limit(1, True, "1", "1", cloid="0x1234")

    def test_order_type_needs_one_variant(self):
        with pytest.raises(MalformedInputError):
            parse_l1_action({
                "type": "order", "grouping": "na",
                "orders": [{"a": 1, "b": True, "p": "1", "s": "1", "r": False, "t": {}}],
            })

    def test_unknown_type(self):
        with pytest.raises(MalformedInputError):
            parse_l1_action({"type": "withdrawEverything"})

    def test_extra_field_rejected(self):
        with pytest.raises(MalformedInputError) as exc:
            parse_l1_action({"type": "cancel", "cancels": [{"a": 1, "o": 1}], "extra": 1})
        assert exc.value.error_code == "MALFORMED_INPUT"
        assert exc.value.details["errors"]

    def test_bool_is_not_an_int(self):
        with pytest.raises(MalformedInputError):
            parse_l1_action({"type": "updateLeverage", "asset": True, "isCross": True, "leverage": 1})

    def test_bad_address_rejected(self):
        with pytest.raises(MalformedInputError):
            parse_l1_action({"type": "vaultTransfer", "vaultAddress": "0x1234", "isDeposit": True, "usd": 1})

    def test_action_kind(self):
        assert action_kind({"type": "cancel"}) == "cancel"
        assert action_kind(ScheduleCancel()) == "scheduleCancel"
        with pytest.raises(MalformedInputError):
            action_kind({"cancels": []})
        with pytest.raises(MalformedInputError):
            action_kind(["order"])


class TestUserSignedActions:
    """User-signed action parsing."""

    def test_address_lowercased(self):
        action = parse_user_signed_action(
            {"type": "usdSend", "destination": DEST, "amount": "1.0", "time": 1}
        )
        assert isinstance(action, UsdSend)
        assert action.destination == DEST.lower()
        assert action.amount == "1"

    def test_envelope_nonce_field(self):
        send = UsdSend(destination=DEST, amount="1", time=42)
        assert send.envelope_nonce == 42
        asset = SendAsset(destination=DEST, source_dex="", destination_dex="spot",
                          token="USDC", amount="1", nonce=43)
        assert asset.envelope_nonce == 43
        assert asset.to_wire()["fromSubAccount"] == ""

    def test_withdraw_parses_by_type(self):
        action = parse_user_signed_action(
            {"type": "withdraw3", "destination": DEST, "amount": "2.50", "time": 1700000000006}
        )
        assert isinstance(action, Withdraw)
        assert action.nonce_field == "time"
        assert action.envelope_nonce == 1700000000006
        assert action.to_wire() == {
            "type": "withdraw3", "destination": DEST.lower(), "amount": "2.5", "time": 1700000000006,
        }

    def test_nonce_range(self):
        with pytest.raises(MalformedInputError):
            parse_user_signed_action(
                {"type": "usdClassTransfer", "amount": "1", "toPerp": True, "nonce": 2**64}
            )

    def test_l1_kind_is_not_user_signed(self):
        with pytest.raises(MalformedInputError):
            parse_user_signed_action({"type": "cancel", "cancels": [{"a": 1, "o": 1}]})
