"""
Signing domains and the fixed EIP-712 schema table.

L1 actions are wrapped in Agent{source, connectionId} under the "Exchange"
domain. User-signed actions are signed field-by-field under the
"HyperliquidSignTransaction" domain with the caller's signatureChainId.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

AGENT_CHAIN_ID = 1337
DEFAULT_SIGNATURE_CHAIN_ID = 42161  # Arbitrum One, wire "0xa4b1"

Fields = Tuple[Tuple[str, str], ...]

EIP712_DOMAIN_FIELDS: Fields = (
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
)

AGENT_PRIMARY_TYPE = "Agent"
AGENT_FIELDS: Fields = (
    ("source", "string"),
    ("connectionId", "bytes32"),
)


@dataclass(frozen=True)
class SigningDomain:
    name: str
    version: str
    chain_id: int
    verifying_contract: str = ZERO_ADDRESS

    def as_message(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


@dataclass(frozen=True)
class UserSignedSchema:
    primary_type: str
    fields: Fields


AGENT_DOMAIN = SigningDomain(name="Exchange", version="1", chain_id=AGENT_CHAIN_ID)


def user_signed_domain(chain_id: int = DEFAULT_SIGNATURE_CHAIN_ID) -> SigningDomain:
    return SigningDomain(name="HyperliquidSignTransaction", version="1", chain_id=chain_id)


def agent_source(is_mainnet: bool) -> str:
    return "a" if is_mainnet else "b"


def hyperliquid_chain(is_mainnet: bool) -> str:
    return "Mainnet" if is_mainnet else "Testnet"


USER_SIGNED_SCHEMAS: Mapping[str, UserSignedSchema] = MappingProxyType({
    "approveBuilderFee": UserSignedSchema(
        "HyperliquidTransaction:ApproveBuilderFee",
        (
            ("hyperliquidChain", "string"),
            ("maxFeeRate", "string"),
            ("builder", "address"),
            ("nonce", "uint64"),
        ),
    ),
    "usdClassTransfer": UserSignedSchema(
        "HyperliquidTransaction:UsdClassTransfer",
        (
            ("hyperliquidChain", "string"),
            ("amount", "string"),
            ("toPerp", "bool"),
            ("nonce", "uint64"),
        ),
    ),
    "usdSend": UserSignedSchema(
        "HyperliquidTransaction:UsdSend",
        (
            ("hyperliquidChain", "string"),
            ("destination", "address"),
            ("amount", "string"),
            ("time", "uint64"),
        ),
    ),
    "spotSend": UserSignedSchema(
        "HyperliquidTransaction:SpotSend",
        (
            ("hyperliquidChain", "string"),
            ("destination", "string"),
            ("token", "string"),
            ("amount", "string"),
            ("time", "uint64"),
        ),
    ),
    "sendAsset": UserSignedSchema(
        "HyperliquidTransaction:SendAsset",
        (
            ("hyperliquidChain", "string"),
            ("destination", "string"),
            ("sourceDex", "string"),
            ("destinationDex", "string"),
            ("token", "string"),
            ("amount", "string"),
            ("fromSubAccount", "string"),
            ("nonce", "uint64"),
        ),
    ),
    "withdraw3": UserSignedSchema(
        "HyperliquidTransaction:Withdraw",
        (
            ("hyperliquidChain", "string"),
            ("destination", "string"),
            ("amount", "string"),
            ("time", "uint64"),
        ),
    ),
})
