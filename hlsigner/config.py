"""
Signer configuration - loaded from environment (.env supported).
"""
import logging
import os
from dataclasses import dataclass, replace
from typing import Literal, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from hlsigner.domains import DEFAULT_SIGNATURE_CHAIN_ID
from hlsigner.errors import ConfigurationError

logger = logging.getLogger(__name__)

Network = Literal["mainnet", "testnet"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


@dataclass(frozen=True)
class SignerConfig:
    network: Network = "testnet"
    private_key: str = ""
    signature_chain_id: int = DEFAULT_SIGNATURE_CHAIN_ID
    sign_timeout_ms: int = 10_000
    verify_signatures: bool = True
    lenient_v: bool = False
    log_dir: str = ".run"

    @property
    def is_mainnet(self) -> bool:
        return self.network == "mainnet"

    @property
    def sign_timeout_s(self) -> Optional[float]:
        return self.sign_timeout_ms / 1000.0 if self.sign_timeout_ms > 0 else None


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    v = raw.strip().lower()
    if v in _TRUTHY:
        return True
    if v in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}", {"env": name})


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip(), 0)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", {"env": name})


def load_config(env: Optional[Mapping[str, str]] = None) -> SignerConfig:
    """Build SignerConfig from the process environment (or an explicit mapping)."""
    if env is None:
        load_dotenv(find_dotenv(usecwd=True), override=False)
        env = os.environ

    network = (env.get("HL_NETWORK") or "testnet").strip().lower()
    if network not in ("mainnet", "testnet"):
        raise ConfigurationError("HL_NETWORK must be 'mainnet' or 'testnet'", {"env": "HL_NETWORK"})

    chain_id = _int(env, "HL_SIGNATURE_CHAIN_ID", DEFAULT_SIGNATURE_CHAIN_ID)
    if chain_id <= 0:
        raise ConfigurationError("HL_SIGNATURE_CHAIN_ID must be positive", {"env": "HL_SIGNATURE_CHAIN_ID"})

    timeout_ms = _int(env, "HL_SIGN_TIMEOUT_MS", 10_000)
    if timeout_ms < 0:
        raise ConfigurationError("HL_SIGN_TIMEOUT_MS must be >= 0", {"env": "HL_SIGN_TIMEOUT_MS"})

    return SignerConfig(
        network=network,
        private_key=(env.get("HL_PRIVATE_KEY") or "").strip(),
        signature_chain_id=chain_id,
        sign_timeout_ms=timeout_ms,
        verify_signatures=_bool(env, "HL_VERIFY_SIGNATURES", True),
        lenient_v=_bool(env, "HL_SIG_LENIENT_V", False),
        log_dir=(env.get("HL_LOG_DIR") or ".run").strip(),
    )


def redacted(cfg: SignerConfig) -> SignerConfig:
    """Copy safe to log: the private key is masked."""
    return replace(cfg, private_key="***" if cfg.private_key else "")
