"""
Pytest Configuration - shared wallets, pinned keys and markers for signer tests.
"""

import asyncio
import os
import random
import tempfile
from pathlib import Path
from typing import Generator, List, Optional

import pytest

from hlsigner.eip712 import TypedData
from hlsigner.wallet import LocalKeyWallet

# Set deterministic seed for all tests
RNG_SEED = int(os.getenv("RNG_SEED", "1337"))
random.seed(RNG_SEED)

# Hardhat / anvil default account #0
HARDHAT_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
HARDHAT_ADDRESS = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"


class RecordingWallet:
    """Local key wallet that remembers every typed message it was asked to sign."""

    def __init__(self, private_key_hex: str = HARDHAT_KEY, delay: float = 0.0):
        self.inner = LocalKeyWallet(private_key_hex)
        self.delay = delay
        self.requests: List[TypedData] = []
        self.override_signature: Optional[str] = None

    async def get_address(self) -> str:
        return await self.inner.get_address()

    async def sign_typed_data(self, typed_data: TypedData) -> str:
        self.requests.append(typed_data)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.override_signature is not None:
            return self.override_signature
        return await self.inner.sign_typed_data(typed_data)


@pytest.fixture
def wallet() -> LocalKeyWallet:
    return LocalKeyWallet(HARDHAT_KEY)


@pytest.fixture
def recording_wallet() -> RecordingWallet:
    return RecordingWallet()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def seeded_random():
    """Provide seeded random number generator."""
    random.seed(RNG_SEED)
    yield random


@pytest.fixture(autouse=True)
def clean_signer_env(monkeypatch):
    """Keep host HL_* variables out of config tests."""
    for key in list(os.environ):
        if key.startswith("HL_"):
            monkeypatch.delenv(key, raising=False)
    yield


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with deterministic settings."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "deterministic: marks tests as deterministic")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        # Mark async tests
        if asyncio.iscoroutinefunction(item.function):
            item.add_marker(pytest.mark.asyncio)

        # Mark deterministic tests
        if "deterministic" in item.name or "golden" in item.name:
            item.add_marker(pytest.mark.deterministic)
