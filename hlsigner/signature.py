"""
Signature codec - 65-byte r || s || v wire format.
"""
from dataclasses import dataclass
from typing import Dict, Union

from eth_utils import remove_0x_prefix

from hlsigner.errors import SignatureFormatError
from hlsigner.secp256k1 import HALF_N

SIGNATURE_HEX_LEN = 130


@dataclass(frozen=True)
class SignatureComponents:
    r: int
    s: int
    v: int

    def __post_init__(self):
        if not 0 <= self.r < 2**256 or not 0 <= self.s < 2**256:
            raise SignatureFormatError("r and s must fit in 32 bytes")
        if self.v not in (27, 28):
            raise SignatureFormatError(f"v must be 27 or 28, got {self.v}", {"v": self.v})

    @property
    def rec_id(self) -> int:
        return self.v - 27

    @property
    def is_low_s(self) -> bool:
        return 1 <= self.s <= HALF_N

    def to_json(self) -> Dict[str, Union[str, int]]:
        """Shape the exchange endpoint expects: {"r": "0x..", "s": "0x..", "v": 27|28}."""
        return {"r": f"0x{self.r:064x}", "s": f"0x{self.s:064x}", "v": self.v}

    def to_bytes(self) -> bytes:
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])

    @classmethod
    def from_rec_id(cls, r: int, s: int, rec_id: int) -> "SignatureComponents":
        return cls(r=r, s=s, v=rec_id + 27)


def normalize_v(v: int, *, lenient: bool = False) -> int:
    if v in (27, 28):
        return v
    if v in (0, 1):
        return v + 27
    if lenient:
        return 27 if v % 2 == 0 else 28
    raise SignatureFormatError(f"unexpected v byte {v}", {"v": v})


def parse_signature(sig: str, *, lenient_v: bool = False) -> SignatureComponents:
    """Parse 0x-optional 130-char hex into components."""
    if not isinstance(sig, str):
        raise SignatureFormatError("signature must be a hex string")
    body = remove_0x_prefix(sig)
    if len(body) != SIGNATURE_HEX_LEN:
        raise SignatureFormatError(
            f"signature must be 65 bytes, got {len(body)} hex chars", {"length": len(body)}
        )
    try:
        raw = bytes.fromhex(body)
    except ValueError:
        raise SignatureFormatError("signature is not valid hex")
    return SignatureComponents(
        r=int.from_bytes(raw[:32], "big"),
        s=int.from_bytes(raw[32:64], "big"),
        v=normalize_v(raw[64], lenient=lenient_v),
    )


def serialize_signature(sig: SignatureComponents) -> str:
    return "0x" + sig.to_bytes().hex()
