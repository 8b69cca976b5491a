"""
Keccak-256 and hex helpers shared by the signing pipeline.

keccak256 here is the original Keccak (pre-NIST padding) used by Ethereum.
hashlib.sha3_256 is a different function and must never be substituted.
"""
from typing import Union

from eth_utils import keccak, remove_0x_prefix

from hlsigner.errors import MalformedInputError


def keccak256(data: Union[bytes, bytearray]) -> bytes:
    """32-byte Keccak-256 digest of raw bytes."""
    return keccak(primitive=bytes(data))


def hex_to_bytes(value: str, *, field: str = "value") -> bytes:
    """Decode an optionally 0x-prefixed hex string."""
    if not isinstance(value, str):
        raise MalformedInputError(f"{field} must be a hex string", {"field": field})
    body = remove_0x_prefix(value)
    if len(body) % 2:
        raise MalformedInputError(f"{field} has odd hex length", {"field": field, "length": len(body)})
    try:
        return bytes.fromhex(body)
    except ValueError:
        raise MalformedInputError(f"{field} is not valid hex", {"field": field})


def to_hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def int_to_bytes32(value: int) -> bytes:
    return value.to_bytes(32, "big")


def bytes_to_int(data: bytes) -> int:
    return int.from_bytes(data, "big")
