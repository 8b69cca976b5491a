"""
Canonical L1 action encoding and hashing.

payload = msgpack(action wire) || uint64_be(nonce) || vault marker
connectionId = keccak256(payload)

Map order in the msgpack bytes is the declared field order of the action
model. Raw dicts are re-validated through the schema before packing.
"""
import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

import msgpack

from hlsigner.actions import L1ActionModel, UINT64_MAX, parse_l1_action
from hlsigner.errors import EncodingError, MalformedInputError
from hlsigner.hashing import hex_to_bytes, keccak256

logger = logging.getLogger(__name__)

NO_VAULT = b"\x00"
VAULT_PRESENT = b"\x01"


def check_wire(obj: Any, path: str = "action") -> None:
    """Reject anything the canonical encoding has no stable form for."""
    if isinstance(obj, bool) or isinstance(obj, str):
        return
    if isinstance(obj, int):
        if not -(2**63) <= obj <= UINT64_MAX:
            raise EncodingError(f"{path}: integer out of msgpack range", {"path": path})
        return
    if isinstance(obj, Mapping):
        for k, v in obj.items():
            if not isinstance(k, str):
                raise EncodingError(f"{path}: map keys must be strings", {"path": path})
            check_wire(v, f"{path}.{k}")
        return
    if isinstance(obj, list):
        for i, v in enumerate(obj):
            check_wire(v, f"{path}[{i}]")
        return
    # floats, None, bytes, tuples: no canonical wire form
    raise EncodingError(f"{path}: unsupported wire value of type {type(obj).__name__}",
                        {"path": path, "value_type": type(obj).__name__})


def encode_action(action: Union[L1ActionModel, Mapping[str, Any]]) -> bytes:
    """msgpack bytes of the action in schema field order."""
    wire = parse_l1_action(action).to_wire()
    check_wire(wire)
    return msgpack.packb(wire, use_bin_type=True, strict_types=True)


def vault_marker(vault_address: Optional[str]) -> bytes:
    # "" means no vault, same as None
    if vault_address is None or vault_address == "":
        return NO_VAULT
    raw = hex_to_bytes(vault_address, field="vault_address")
    if len(raw) != 20:
        raise MalformedInputError("vault_address must be 20 bytes",
                                  {"field": "vault_address", "length": len(raw)})
    return VAULT_PRESENT + raw


def encode_nonce(nonce: int) -> bytes:
    if isinstance(nonce, bool) or not isinstance(nonce, int) or not 0 <= nonce <= UINT64_MAX:
        raise MalformedInputError("nonce must be an unsigned 64-bit integer", {"nonce": repr(nonce)})
    return nonce.to_bytes(8, "big")


def action_payload(action: Union[L1ActionModel, Mapping[str, Any]], nonce: int,
                   vault_address: Optional[str] = None) -> bytes:
    """Bytes hashed into the connectionId."""
    nonce_bytes = encode_nonce(nonce)
    marker = vault_marker(vault_address)
    return encode_action(action) + nonce_bytes + marker


def action_hash(action: Union[L1ActionModel, Mapping[str, Any]], nonce: int,
                vault_address: Optional[str] = None) -> bytes:
    """32-byte connectionId for an L1 action."""
    payload = action_payload(action, nonce, vault_address)
    digest = keccak256(payload)
    logger.debug("[HL:action-hash] packed=%s digest=%s", payload.hex()[:200], digest.hex())
    return digest
