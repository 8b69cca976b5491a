"""
Keccak-256 vectors - guards against NIST SHA3-256 being used in its place.
"""

import hashlib

import pytest

from hlsigner.errors import MalformedInputError
from hlsigner.hashing import hex_to_bytes, keccak256, to_hex

KECCAK_EMPTY = "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
KECCAK_ABC = "4e03657aea45a94fc7d47ba826c8d667c0d1e6e33a64a036ec44f58fa12d6c45"
SHA3_EMPTY = "a7ffc6f8bf1ed76651c14756a061d662f580ff4de43b49fa82d80a4b80f8434a"
SHA3_ABC = "3a985da74fe225b2045c172d6bd390bd855f086e3e9d525b46bfe24511431532"


class TestKeccakVectors:
    """Published Keccak-256 vectors."""

    @pytest.mark.parametrize("data,expected", [(b"", KECCAK_EMPTY), (b"abc", KECCAK_ABC)])
    def test_known_vectors(self, data, expected):
        assert keccak256(data).hex() == expected

    @pytest.mark.parametrize("data,sha3", [(b"", SHA3_EMPTY), (b"abc", SHA3_ABC)])
    def test_not_sha3(self, data, sha3):
        # the stdlib SHA3 really produces the NIST digest...
        assert hashlib.sha3_256(data).hexdigest() == sha3
        # ...and ours must not
        assert keccak256(data).hex() != sha3

    def test_accepts_bytearray(self):
        assert keccak256(bytearray(b"abc")).hex() == KECCAK_ABC

    def test_digest_length(self):
        assert len(keccak256(b"x" * 1000)) == 32


class TestHexHelpers:
    """Hex decoding used for addresses, vaults and keys."""

    def test_prefix_optional(self):
        assert hex_to_bytes("0x0a0b") == hex_to_bytes("0a0b") == b"\x0a\x0b"

    def test_odd_length_rejected(self):
        with pytest.raises(MalformedInputError):
            hex_to_bytes("0xabc")

    def test_bad_hex_rejected(self):
        with pytest.raises(MalformedInputError):
            hex_to_bytes("0xzz")

    def test_non_string_rejected(self):
        with pytest.raises(MalformedInputError):
            hex_to_bytes(b"\x00")

    def test_to_hex(self):
        assert to_hex(b"\x01\xff") == "0x01ff"
