"""
hlsigner - Hyperliquid exchange request signing.
Canonical action encoding, EIP-712 digests and recoverable secp256k1 signatures.
"""

from .actions import parse_l1_action, parse_user_signed_action
from .config import SignerConfig, load_config
from .eip712 import TypedData, signing_digest
from .errors import (
    ConfigurationError,
    EncodingError,
    MalformedInputError,
    RecoveryFailure,
    SignatureFormatError,
    SignerError,
    SignerTimeoutError,
)
from .hl_canon import action_hash, action_payload
from .signature import SignatureComponents, parse_signature, serialize_signature
from .signer import ExchangeSigner, SignedEnvelope, sign_action, sign_l1_action, sign_user_signed_action
from .wallet import LocalKeyWallet, WalletIdentity

__all__ = [
    "ConfigurationError",
    "EncodingError",
    "ExchangeSigner",
    "LocalKeyWallet",
    "MalformedInputError",
    "RecoveryFailure",
    "SignatureComponents",
    "SignatureFormatError",
    "SignedEnvelope",
    "SignerConfig",
    "SignerError",
    "SignerTimeoutError",
    "TypedData",
    "WalletIdentity",
    "action_hash",
    "action_payload",
    "load_config",
    "parse_l1_action",
    "parse_signature",
    "parse_user_signed_action",
    "serialize_signature",
    "sign_action",
    "sign_l1_action",
    "sign_user_signed_action",
    "signing_digest",
]
