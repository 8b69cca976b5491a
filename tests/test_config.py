"""
Signer configuration from environment and .env files.
"""

import logging

import pytest

from hlsigner.config import SignerConfig, load_config, redacted
from hlsigner.errors import ConfigurationError, create_structured_error_response
from hlsigner.logs import setup_log_rotation


class TestLoadConfig:
    """Environment parsing."""

    def test_defaults(self):
        cfg = load_config({})
        assert cfg == SignerConfig()
        assert cfg.network == "testnet"
        assert not cfg.is_mainnet
        assert cfg.signature_chain_id == 42161
        assert cfg.sign_timeout_s == 10.0
        assert cfg.verify_signatures is True
        assert cfg.lenient_v is False

    def test_values(self):
        cfg = load_config({
            "HL_NETWORK": "Mainnet",
            "HL_PRIVATE_KEY": " 0xabc ",
            "HL_SIGNATURE_CHAIN_ID": "0xa4b1",
            "HL_SIGN_TIMEOUT_MS": "0",
            "HL_VERIFY_SIGNATURES": "no",
            "HL_SIG_LENIENT_V": "1",
            "HL_LOG_DIR": "/tmp/hl",
        })
        assert cfg.is_mainnet
        assert cfg.private_key == "0xabc"
        assert cfg.signature_chain_id == 42161
        assert cfg.sign_timeout_s is None
        assert cfg.verify_signatures is False
        assert cfg.lenient_v is True
        assert cfg.log_dir == "/tmp/hl"

    @pytest.mark.parametrize("env", [
        {"HL_NETWORK": "devnet"},
        {"HL_SIGNATURE_CHAIN_ID": "arbitrum"},
        {"HL_SIGNATURE_CHAIN_ID": "0"},
        {"HL_SIGN_TIMEOUT_MS": "-5"},
        {"HL_VERIFY_SIGNATURES": "maybe"},
    ])
    def test_invalid(self, env):
        with pytest.raises(ConfigurationError) as exc:
            load_config(env)
        assert create_structured_error_response(exc.value)["error_type"] == "CONFIG_ERROR"

    def test_reads_dotenv(self, temp_dir, monkeypatch):
        (temp_dir / ".env").write_text("HL_NETWORK=mainnet\nHL_SIGNATURE_CHAIN_ID=421614\n")
        monkeypatch.chdir(temp_dir)
        cfg = load_config()
        assert cfg.network == "mainnet"
        assert cfg.signature_chain_id == 421614

    def test_process_env_wins_over_dotenv(self, temp_dir, monkeypatch):
        (temp_dir / ".env").write_text("HL_NETWORK=mainnet\n")
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("HL_NETWORK", "testnet")
        assert load_config().network == "testnet"

    def test_redacted(self):
        cfg = SignerConfig(private_key="0x" + "11" * 32)
        safe = redacted(cfg)
        assert safe.private_key == "***"
        assert "11" * 32 not in repr(safe)
        assert redacted(SignerConfig()).private_key == ""


class TestLogRotation:
    """setup_log_rotation."""

    def test_installs_handler_once(self, temp_dir):
        root = logging.getLogger()
        handler = setup_log_rotation(str(temp_dir))
        try:
            assert handler in root.handlers
            assert setup_log_rotation(str(temp_dir)) is handler
            assert (temp_dir / "signer.log").exists()
        finally:
            root.removeHandler(handler)
            handler.close()
