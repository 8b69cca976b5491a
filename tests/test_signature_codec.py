"""
Signature codec: 65-byte r || s || v parse and serialize.
"""

import pytest

from hlsigner.errors import SignatureFormatError
from hlsigner.secp256k1 import HALF_N, N
from hlsigner.signature import SignatureComponents, normalize_v, parse_signature, serialize_signature

R = 0x4355C47D63924E8A72E509B65029052EB6C299D53A04E167C5775FD466751C9D
S = 0x07299936D304C153F6443DFA05F40FF007D72911B6F72307F996231605B91562


def raw_hex(v: int, prefix: str = "0x") -> str:
    return prefix + R.to_bytes(32, "big").hex() + S.to_bytes(32, "big").hex() + bytes([v]).hex()


class TestParse:
    """parse_signature."""

    @pytest.mark.parametrize("v", [27, 28])
    def test_round_trip(self, v):
        sig = SignatureComponents(R, S, v)
        assert parse_signature(serialize_signature(sig)) == sig

    @pytest.mark.parametrize("v_byte,expected", [(0, 27), (1, 28), (27, 27), (28, 28)])
    def test_v_normalization(self, v_byte, expected):
        assert parse_signature(raw_hex(v_byte)).v == expected

    def test_prefix_optional(self):
        assert parse_signature(raw_hex(27, "")) == parse_signature(raw_hex(27))

    @pytest.mark.parametrize("v_byte", [2, 26, 29, 35, 255])
    def test_out_of_range_v_rejected(self, v_byte):
        with pytest.raises(SignatureFormatError):
            parse_signature(raw_hex(v_byte))

    @pytest.mark.parametrize("v_byte,expected", [(2, 27), (35, 28), (36, 27), (255, 28)])
    def test_lenient_v_parity(self, v_byte, expected):
        assert parse_signature(raw_hex(v_byte), lenient_v=True).v == expected

    @pytest.mark.parametrize("sig", ["0x", "0x00", raw_hex(27)[:-2], raw_hex(27) + "00"])
    def test_wrong_length(self, sig):
        with pytest.raises(SignatureFormatError) as exc:
            parse_signature(sig)
        assert exc.value.error_code == "SIGNATURE_FORMAT"

    def test_bad_hex(self):
        with pytest.raises(SignatureFormatError):
            parse_signature("0x" + "zz" * 65)

    def test_non_string(self):
        with pytest.raises(SignatureFormatError):
            parse_signature(b"\x00" * 65)


class TestComponents:
    """SignatureComponents values and JSON shape."""

    def test_json_shape(self):
        sig = SignatureComponents(1, 2, 28)
        assert sig.to_json() == {"r": "0x" + "00" * 31 + "01", "s": "0x" + "00" * 31 + "02", "v": 28}

    def test_serialize_layout(self):
        encoded = serialize_signature(SignatureComponents(R, S, 28))
        assert len(encoded) == 132
        assert encoded.endswith("1c")

    def test_invalid_v(self):
        with pytest.raises(SignatureFormatError):
            SignatureComponents(R, S, 0)

    def test_low_s_flag(self):
        assert SignatureComponents(R, HALF_N, 27).is_low_s
        assert not SignatureComponents(R, N - S, 27).is_low_s

    def test_rec_id(self):
        assert SignatureComponents(R, S, 27).rec_id == 0
        assert SignatureComponents.from_rec_id(R, S, 1).v == 28

    def test_normalize_v_helper(self):
        assert normalize_v(0) == 27
        with pytest.raises(SignatureFormatError):
            normalize_v(30)
