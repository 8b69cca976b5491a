"""
Signing Orchestrator - turns an exchange action into a signed envelope.

L1 actions:   action -> msgpack payload -> connectionId -> Agent typed data (Exchange domain)
User-signed:  action -> kind-specific typed data (HyperliquidSignTransaction domain)

Both paths then ask the wallet to sign, parse the returned hex and, unless
disabled, recover the signer from the digest and compare it with the
wallet's address. Nothing unverified is returned when verification is on.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from hlsigner.actions import (
    L1_KINDS,
    USER_SIGNED_KINDS,
    USER_SIGNED_NONCE_FIELDS,
    L1ActionModel,
    UserSignedModel,
    action_kind,
    canon_addr,
    parse_l1_action,
    parse_user_signed_action,
)
from hlsigner.async_tools import timeout
from hlsigner.config import SignerConfig, load_config
from hlsigner.domains import DEFAULT_SIGNATURE_CHAIN_ID
from hlsigner.eip712 import TypedData, build_l1_typed_data, build_user_signed_typed_data, signing_digest
from hlsigner.errors import ConfigurationError, MalformedInputError, RecoveryFailure, SignatureFormatError
from hlsigner.hl_canon import action_hash
from hlsigner.secp256k1 import recover_address
from hlsigner.signature import SignatureComponents, parse_signature
from hlsigner.wallet import LocalKeyWallet, WalletIdentity

logger = logging.getLogger(__name__)

ActionInput = Union[L1ActionModel, UserSignedModel, Mapping[str, Any]]


@dataclass(frozen=True)
class SignedEnvelope:
    """Body posted to /exchange."""

    action: Dict[str, Any]
    nonce: int
    signature: SignatureComponents
    vault_address: Optional[str] = None
    digest: bytes = b""

    def to_json(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "action": self.action,
            "nonce": self.nonce,
            "signature": self.signature.to_json(),
        }
        if self.vault_address:
            body["vaultAddress"] = self.vault_address
        return body


def _canon_vault(vault_address: Optional[str]) -> Optional[str]:
    if vault_address is None or vault_address == "":
        return None
    try:
        return canon_addr(vault_address)
    except ValueError:
        raise MalformedInputError("vault_address must be a 20-byte hex address", {"field": "vault_address"})


async def verify_signature(wallet: WalletIdentity, digest: bytes, sig: SignatureComponents,
                           timeout_s: Optional[float] = None) -> str:
    """Recover the signer of `digest` and require it to be the wallet's address."""
    if not sig.is_low_s:
        raise SignatureFormatError("signature s is not in the lower half of the curve order",
                                   {"s": hex(sig.s)})
    recovered = recover_address(digest, sig.r, sig.s, sig.rec_id)
    expected = (await timeout(wallet.get_address(), timeout_s, operation="get_address")).lower()
    if recovered != expected:
        logger.error("[HL:verify] signer mismatch recovered=%s expected=%s", recovered, expected)
        raise RecoveryFailure(
            "signature does not recover to the wallet address",
            {"recovered": recovered, "expected": expected, "digest": digest.hex()},
        )
    return recovered


async def _sign_typed(wallet: WalletIdentity, typed: TypedData, *, timeout_s: Optional[float],
                      verify: bool, lenient_v: bool):
    digest = signing_digest(typed)
    raw = await timeout(wallet.sign_typed_data(typed), timeout_s, operation="sign_typed_data")
    sig = parse_signature(raw, lenient_v=lenient_v)
    if verify:
        await verify_signature(wallet, digest, sig, timeout_s)
    return digest, sig


async def sign_l1_action(wallet: WalletIdentity, action: Union[L1ActionModel, Mapping[str, Any]],
                         nonce: int, *, is_mainnet: bool, vault_address: Optional[str] = None,
                         timeout_s: Optional[float] = None, verify: bool = True,
                         lenient_v: bool = False) -> SignedEnvelope:
    """Sign an L1 action through the Agent{source, connectionId} struct."""
    model = parse_l1_action(action)
    vault = _canon_vault(vault_address)
    connection_id = action_hash(model, nonce, vault)
    typed = build_l1_typed_data(connection_id, is_mainnet)
    digest, sig = await _sign_typed(wallet, typed, timeout_s=timeout_s, verify=verify, lenient_v=lenient_v)
    logger.info("[HL:sign] l1 type=%s nonce=%s vault=%s connection_id=%s digest=%s v=%s",
                model.type, nonce, vault, connection_id.hex(), digest.hex(), sig.v)
    return SignedEnvelope(action=model.to_wire(), nonce=nonce, signature=sig,
                          vault_address=vault, digest=digest)


async def sign_user_signed_action(wallet: WalletIdentity, action: Union[UserSignedModel, Mapping[str, Any]],
                                  *, is_mainnet: bool,
                                  signature_chain_id: int = DEFAULT_SIGNATURE_CHAIN_ID,
                                  timeout_s: Optional[float] = None, verify: bool = True,
                                  lenient_v: bool = False) -> SignedEnvelope:
    """Sign a user-signed action directly as its own EIP-712 message."""
    model = parse_user_signed_action(action)
    typed = build_user_signed_typed_data(model, is_mainnet, signature_chain_id)
    digest, sig = await _sign_typed(wallet, typed, timeout_s=timeout_s, verify=verify, lenient_v=lenient_v)
    logger.info("[HL:sign] user-signed type=%s nonce=%s chain_id=%s digest=%s v=%s",
                model.type, model.envelope_nonce, signature_chain_id, digest.hex(), sig.v)
    return SignedEnvelope(action=dict(typed.message), nonce=model.envelope_nonce,
                          signature=sig, digest=digest)


async def sign_action(wallet: WalletIdentity, action: ActionInput, nonce: Optional[int] = None, *,
                      is_mainnet: bool, vault_address: Optional[str] = None,
                      signature_chain_id: int = DEFAULT_SIGNATURE_CHAIN_ID,
                      timeout_s: Optional[float] = None, verify: bool = True,
                      lenient_v: bool = False) -> SignedEnvelope:
    """Classify the action and route it to the matching signing scheme."""
    kind = action_kind(action)
    if kind in L1_KINDS:
        if nonce is None:
            raise MalformedInputError(f"{kind} requires a nonce", {"action_type": kind})
        return await sign_l1_action(wallet, action, nonce, is_mainnet=is_mainnet,
                                    vault_address=vault_address, timeout_s=timeout_s,
                                    verify=verify, lenient_v=lenient_v)
    if kind in USER_SIGNED_KINDS:
        if vault_address:
            raise MalformedInputError(f"{kind} cannot be signed for a vault", {"action_type": kind})
        model = parse_user_signed_action(action)
        if nonce is not None and nonce != model.envelope_nonce:
            raise MalformedInputError(
                f"nonce {nonce} does not match {kind}.{model.nonce_field}={model.envelope_nonce}",
                {"action_type": kind},
            )
        return await sign_user_signed_action(wallet, model, is_mainnet=is_mainnet,
                                             signature_chain_id=signature_chain_id,
                                             timeout_s=timeout_s, verify=verify, lenient_v=lenient_v)
    raise MalformedInputError(f"unknown action type {kind!r}", {"action_type": kind})


class ExchangeSigner:
    """Wallet plus config; fills nonces from the millisecond clock."""

    def __init__(self, wallet: WalletIdentity, config: Optional[SignerConfig] = None):
        self.wallet = wallet
        self.config = config or SignerConfig()
        self._last_nonce = 0

    @classmethod
    def from_config(cls, config: Optional[SignerConfig] = None) -> "ExchangeSigner":
        config = config or load_config()
        if not config.private_key:
            raise ConfigurationError("HL_PRIVATE_KEY is not set", {"env": "HL_PRIVATE_KEY"})
        return cls(LocalKeyWallet(config.private_key), config)

    def next_nonce(self) -> int:
        """Millisecond timestamp, strictly increasing per signer."""
        nonce = max(int(time.time() * 1000), self._last_nonce + 1)
        self._last_nonce = nonce
        return nonce

    async def sign(self, action: ActionInput, nonce: Optional[int] = None,
                   vault_address: Optional[str] = None) -> SignedEnvelope:
        kind = action_kind(action)
        if kind in USER_SIGNED_KINDS and isinstance(action, Mapping):
            field = USER_SIGNED_NONCE_FIELDS[kind]
            if field not in action:
                action = {**action, field: nonce if nonce is not None else self.next_nonce()}
        elif kind in L1_KINDS and nonce is None:
            nonce = self.next_nonce()
        cfg = self.config
        return await sign_action(
            self.wallet, action, nonce,
            is_mainnet=cfg.is_mainnet,
            vault_address=vault_address,
            signature_chain_id=cfg.signature_chain_id,
            timeout_s=cfg.sign_timeout_s,
            verify=cfg.verify_signatures,
            lenient_v=cfg.lenient_v,
        )
