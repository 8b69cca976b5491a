"""
Wallet Identity - the signing capability consumed by the orchestrator.

Anything that can report an address and sign EIP-712 typed data satisfies
WalletIdentity: a local key, a hardware device, a custodial service.
LocalKeyWallet is the in-process reference implementation.
"""

import logging
from abc import abstractmethod
from typing import Protocol, runtime_checkable

from hexbytes import HexBytes

from hlsigner import secp256k1
from hlsigner.eip712 import TypedData, signing_digest
from hlsigner.errors import MalformedInputError
from hlsigner.signature import SignatureComponents, serialize_signature

logger = logging.getLogger(__name__)


@runtime_checkable
class WalletIdentity(Protocol):
    """Protocol for a signer of EIP-712 typed data."""

    @abstractmethod
    async def get_address(self) -> str:
        """Lowercase 0x-prefixed account address."""
        ...

    @abstractmethod
    async def sign_typed_data(self, typed_data: TypedData) -> str:
        """Return a 65-byte r||s||v signature as hex."""
        ...


class LocalKeyWallet:
    """Wallet backed by a private key held in memory."""

    def __init__(self, private_key_hex: str):
        try:
            raw = HexBytes(private_key_hex)
        except (TypeError, ValueError):
            raise MalformedInputError("private key is not valid hex", {"field": "private_key"})
        if len(raw) != 32:
            raise MalformedInputError("private key must be 32 bytes", {"field": "private_key", "length": len(raw)})
        d = int.from_bytes(raw, "big")
        if not 1 <= d < secp256k1.N:
            raise MalformedInputError("private key out of range", {"field": "private_key"})
        self.__d = d
        self._public_key = secp256k1.public_key_from_private(d)
        self._address = secp256k1.address_from_public_key(self._public_key)
        logger.info("[HL:wallet] local key wallet ready address=%s", self._address)

    @property
    def address(self) -> str:
        return self._address

    @property
    def public_key(self) -> bytes:
        return secp256k1.public_key_bytes(self._public_key)

    def __repr__(self) -> str:
        return f"LocalKeyWallet(address={self._address}, key=***)"

    async def get_address(self) -> str:
        return self._address

    def sign_digest(self, digest: bytes) -> SignatureComponents:
        r, s, rec_id = secp256k1.sign_digest(digest, self.__d, self._public_key)
        return SignatureComponents.from_rec_id(r, s, rec_id)

    async def sign_typed_data(self, typed_data: TypedData) -> str:
        return serialize_signature(self.sign_digest(signing_digest(typed_data)))
