"""
EIP-712 structured data hashing.

encode_type / type_hash / encode_value / hash_struct implement the typed
structured data encoding; signing_digest produces the 32 bytes that are
actually signed:

    keccak256(0x19 0x01 || domainSeparator || hashStruct(primaryType, message))

Field order always follows the declared type list, never the insertion
order of the message mapping.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from eth_utils import is_hex_address

from hlsigner.actions import UserSignedModel
from hlsigner.domains import (
    AGENT_DOMAIN,
    AGENT_FIELDS,
    AGENT_PRIMARY_TYPE,
    DEFAULT_SIGNATURE_CHAIN_ID,
    EIP712_DOMAIN_FIELDS,
    USER_SIGNED_SCHEMAS,
    agent_source,
    hyperliquid_chain,
    user_signed_domain,
)
from hlsigner.errors import EncodingError, MalformedInputError
from hlsigner.hashing import hex_to_bytes, keccak256

logger = logging.getLogger(__name__)

DOMAIN_TYPE = "EIP712Domain"

_ARRAY_RE = re.compile(r"^(.*)\[(\d*)\]$")
_INT_RE = re.compile(r"^(u?)int(\d*)$")
_BYTES_N_RE = re.compile(r"^bytes(\d+)$")

WORD = 32


@dataclass(frozen=True)
class TypedField:
    name: str
    type: str


def _split_array(type_name: str) -> Tuple[str, Optional[int], bool]:
    """'Foo[3]' -> ('Foo', 3, True); 'Foo[]' -> ('Foo', None, True); 'Foo' -> ('Foo', None, False)."""
    m = _ARRAY_RE.match(type_name)
    if not m:
        return type_name, None, False
    size = m.group(2)
    return m.group(1), (int(size) if size else None), True


def _base_type(type_name: str) -> str:
    while True:
        inner, _, is_array = _split_array(type_name)
        if not is_array:
            return inner
        type_name = inner


def _int_bits(type_name: str) -> Optional[Tuple[bool, int]]:
    m = _INT_RE.match(type_name)
    if not m:
        return None
    bits = int(m.group(2) or 256)
    if bits % 8 or not 8 <= bits <= 256:
        return None
    return m.group(1) == "", bits


def _bytes_len(type_name: str) -> Optional[int]:
    m = _BYTES_N_RE.match(type_name)
    if not m:
        return None
    n = int(m.group(1))
    return n if 1 <= n <= 32 else None


def is_atomic(type_name: str) -> bool:
    if type_name in ("string", "bytes", "bool", "address"):
        return True
    return _int_bits(type_name) is not None or _bytes_len(type_name) is not None


@dataclass(frozen=True)
class TypedData:
    """Typed message ready for digesting: domain, types, primaryType, message."""

    domain: Mapping[str, Any]
    types: Mapping[str, Tuple[TypedField, ...]]
    primary_type: str
    message: Mapping[str, Any]
    # append referenced struct types to encodeType (standard v4 wallets)
    nested_types: bool = False

    def __post_init__(self):
        if DOMAIN_TYPE not in self.types:
            raise EncodingError("types must declare EIP712Domain", {"types": sorted(self.types)})
        if self.primary_type not in self.types:
            raise EncodingError(f"primary type {self.primary_type!r} is not declared",
                                {"primary_type": self.primary_type})
        for struct_name, fields in self.types.items():
            for f in fields:
                base = _base_type(f.type)
                if not is_atomic(base) and base not in self.types:
                    raise EncodingError(
                        f"{struct_name}.{f.name} references undeclared type {base!r}",
                        {"struct": struct_name, "field": f.name, "type": f.type},
                    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, nested_types: bool = False) -> "TypedData":
        """Build from the JSON shape used by wallets (eth_signTypedData_v4)."""
        try:
            types = {
                name: tuple(TypedField(f["name"], f["type"]) for f in fields)
                for name, fields in data["types"].items()
            }
            return cls(
                domain=dict(data["domain"]),
                types=types,
                primary_type=data["primaryType"],
                message=dict(data["message"]),
                nested_types=nested_types,
            )
        except (KeyError, TypeError) as e:
            raise MalformedInputError(f"typed data is missing {e}", {"keys": sorted(data)})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": _jsonable(self.domain),
            "types": {
                name: [{"name": f.name, "type": f.type} for f in fields]
                for name, fields in self.types.items()
            },
            "primaryType": self.primary_type,
            "message": _jsonable(self.message),
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Mapping):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _fields_of(types: Mapping[str, Sequence[TypedField]], name: str) -> Sequence[TypedField]:
    try:
        return types[name]
    except KeyError:
        raise EncodingError(f"struct type {name!r} is not declared", {"type": name})


def _dependencies(name: str, types: Mapping[str, Sequence[TypedField]], found: Set[str]) -> Set[str]:
    if name in found or name not in types:
        return found
    found.add(name)
    for f in types[name]:
        _dependencies(_base_type(f.type), types, found)
    return found


def encode_type(name: str, types: Mapping[str, Sequence[TypedField]], *, nested_types: bool = False) -> str:
    """
    Name(type1 name1,...) from the declared fields of `name` only.

    With nested_types=True the referenced struct types are appended, sorted,
    as in wallet implementations of eth_signTypedData_v4.
    """
    _fields_of(types, name)
    deps = _dependencies(name, types, set()) if nested_types else set()
    deps.discard(name)
    out = []
    for struct in [name] + sorted(deps):
        members = ",".join(f"{f.type} {f.name}" for f in types[struct])
        out.append(f"{struct}({members})")
    return "".join(out)


def type_hash(name: str, types: Mapping[str, Sequence[TypedField]], *, nested_types: bool = False) -> bytes:
    return keccak256(encode_type(name, types, nested_types=nested_types).encode("utf-8"))


def _as_bytes(value: Any, type_name: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return hex_to_bytes(value, field=type_name)
    raise MalformedInputError(f"{type_name} value must be bytes or hex", {"type": type_name})


def _as_int(value: Any, type_name: str) -> int:
    if isinstance(value, bool):
        raise MalformedInputError(f"{type_name} value must be an integer", {"type": type_name})
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            pass
    raise MalformedInputError(f"{type_name} value must be an integer", {"type": type_name, "value": repr(value)})


def encode_value(type_name: str, value: Any, types: Mapping[str, Sequence[TypedField]], *,
                 nested_types: bool = False) -> bytes:
    """32-byte encoding of one field value."""
    inner, size, is_array = _split_array(type_name)
    if is_array:
        if not isinstance(value, (list, tuple)):
            raise MalformedInputError(f"{type_name} value must be a list", {"type": type_name})
        if size is not None and len(value) != size:
            raise MalformedInputError(f"{type_name} expects {size} elements, got {len(value)}",
                                      {"type": type_name})
        return keccak256(b"".join(encode_value(inner, v, types, nested_types=nested_types) for v in value))

    if type_name in types:
        if not isinstance(value, Mapping):
            raise MalformedInputError(f"{type_name} value must be a mapping", {"type": type_name})
        return hash_struct(type_name, value, types, nested_types=nested_types)

    if type_name == "string":
        if not isinstance(value, str):
            raise MalformedInputError("string value must be str", {"type": type_name})
        return keccak256(value.encode("utf-8"))

    if type_name == "bytes":
        return keccak256(_as_bytes(value, type_name))

    if type_name == "bool":
        if not isinstance(value, bool):
            raise MalformedInputError("bool value must be True or False", {"type": type_name})
        return int(value).to_bytes(WORD, "big")

    if type_name == "address":
        if isinstance(value, (bytes, bytearray)) and len(value) == 20:
            raw = bytes(value)
        elif isinstance(value, str) and is_hex_address(value):
            raw = hex_to_bytes(value, field="address")
        else:
            raise MalformedInputError("address must be 20 bytes", {"type": type_name, "value": repr(value)})
        return raw.rjust(WORD, b"\x00")

    n = _bytes_len(type_name)
    if n is not None:
        raw = _as_bytes(value, type_name)
        if n == WORD:
            if len(raw) > WORD:
                raise EncodingError("bytes32 value longer than 32 bytes", {"length": len(raw)})
            return raw.rjust(WORD, b"\x00")
        if len(raw) != n:
            raise EncodingError(f"{type_name} value must be exactly {n} bytes", {"length": len(raw)})
        return raw.ljust(WORD, b"\x00")

    int_spec = _int_bits(type_name)
    if int_spec is not None:
        signed, bits = int_spec
        x = _as_int(value, type_name)
        lo, hi = (-(1 << (bits - 1)), (1 << (bits - 1)) - 1) if signed else (0, (1 << bits) - 1)
        if not lo <= x <= hi:
            raise EncodingError(f"{x} out of range for {type_name}", {"type": type_name})
        return (x % (1 << 256)).to_bytes(WORD, "big")

    raise EncodingError(f"unknown EIP-712 type {type_name!r}", {"type": type_name})


def hash_struct(name: str, data: Mapping[str, Any], types: Mapping[str, Sequence[TypedField]], *,
                nested_types: bool = False) -> bytes:
    fields = _fields_of(types, name)
    parts: List[bytes] = [type_hash(name, types, nested_types=nested_types)]
    for f in fields:
        if f.name not in data:
            raise MalformedInputError(f"{name} is missing field {f.name!r}", {"struct": name, "field": f.name})
        parts.append(encode_value(f.type, data[f.name], types, nested_types=nested_types))
    return keccak256(b"".join(parts))


def domain_separator(domain: Mapping[str, Any], types: Mapping[str, Sequence[TypedField]]) -> bytes:
    return hash_struct(DOMAIN_TYPE, domain, types)


def signing_digest(typed: TypedData) -> bytes:
    """Final 32-byte digest handed to the curve."""
    separator = domain_separator(typed.domain, typed.types)
    struct = hash_struct(typed.primary_type, typed.message, typed.types, nested_types=typed.nested_types)
    digest = keccak256(b"\x19\x01" + separator + struct)
    logger.debug("[HL:eip712] primary=%s domain=%s struct=%s digest=%s",
                 typed.primary_type, separator.hex(), struct.hex(), digest.hex())
    return digest


def _fields(pairs: Iterable[Tuple[str, str]]) -> Tuple[TypedField, ...]:
    return tuple(TypedField(name, type_name) for name, type_name in pairs)


def build_l1_typed_data(connection_id: bytes, is_mainnet: bool) -> TypedData:
    """Agent{source, connectionId} under the Exchange domain."""
    if not isinstance(connection_id, (bytes, bytearray)) or len(connection_id) != 32:
        raise MalformedInputError("connection id must be 32 bytes", {"field": "connection_id"})
    return TypedData(
        domain=AGENT_DOMAIN.as_message(),
        types={
            DOMAIN_TYPE: _fields(EIP712_DOMAIN_FIELDS),
            AGENT_PRIMARY_TYPE: _fields(AGENT_FIELDS),
        },
        primary_type=AGENT_PRIMARY_TYPE,
        message={"source": agent_source(is_mainnet), "connectionId": bytes(connection_id)},
    )


def user_signed_message(action: UserSignedModel, is_mainnet: bool,
                        chain_id: int = DEFAULT_SIGNATURE_CHAIN_ID) -> Dict[str, Any]:
    """Wire form of a user-signed action; also the EIP-712 message."""
    wire = action.to_wire()
    out: Dict[str, Any] = {
        "type": wire.pop("type"),
        "signatureChainId": hex(chain_id),
        "hyperliquidChain": hyperliquid_chain(is_mainnet),
    }
    out.update(wire)
    return out


def build_user_signed_typed_data(action: UserSignedModel, is_mainnet: bool,
                                 chain_id: int = DEFAULT_SIGNATURE_CHAIN_ID) -> TypedData:
    schema = USER_SIGNED_SCHEMAS.get(action.type)
    if schema is None:
        raise EncodingError(f"no EIP-712 schema for {action.type!r}", {"action_type": action.type})
    return TypedData(
        domain=user_signed_domain(chain_id).as_message(),
        types={
            DOMAIN_TYPE: _fields(EIP712_DOMAIN_FIELDS),
            schema.primary_type: _fields(schema.fields),
        },
        primary_type=schema.primary_type,
        message=user_signed_message(action, is_mainnet, chain_id),
    )
