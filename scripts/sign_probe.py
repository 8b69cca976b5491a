#!/usr/bin/env python3
"""
Sign Probe - offline end-to-end signing check.
Signs an updateLeverage action (L1) and a usdClassTransfer (user-signed) with
the configured key and cross-checks recovery with eth_keys. Nothing is posted.
"""
import asyncio
import json
import logging
import sys
import time
from pathlib import Path

from eth_keys import keys

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hlsigner.actions import UpdateLeverage, UsdClassTransfer
from hlsigner.config import load_config, redacted
from hlsigner.errors import SignerError, create_structured_error_response
from hlsigner.logs import setup_log_rotation
from hlsigner.signer import ExchangeSigner, SignedEnvelope

logger = logging.getLogger("sign_probe")


def eth_keys_recover(envelope: SignedEnvelope) -> str:
    sig = envelope.signature
    pub = keys.Signature(vrs=(sig.rec_id, sig.r, sig.s)).recover_public_key_from_msg_hash(envelope.digest)
    return pub.to_checksum_address().lower()


async def main() -> int:
    cfg = load_config()
    setup_log_rotation(cfg.log_dir, "sign_probe.log")
    logger.info("config=%s", redacted(cfg))

    try:
        signer = ExchangeSigner.from_config(cfg)
    except SignerError as e:
        print(json.dumps(create_structured_error_response(e), indent=2))
        return 2

    address = await signer.wallet.get_address()
    nonce = int(time.time() * 1000)
    probes = [
        ("l1", UpdateLeverage(asset=0, is_cross=True, leverage=5)),
        ("user-signed", UsdClassTransfer(amount="1", to_perp=True, nonce=nonce)),
    ]

    ok = True
    for label, action in probes:
        try:
            envelope = await signer.sign(action, nonce if label == "l1" else None)
        except SignerError as e:
            print(f"[{label}] FAILED", json.dumps(create_structured_error_response(e)))
            ok = False
            continue
        recovered = eth_keys_recover(envelope)
        match = recovered == address
        ok = ok and match
        print(f"[{label}] digest=0x{envelope.digest.hex()} recovered={recovered} match={match}")
        print(json.dumps(envelope.to_json(), indent=2))

    print(f"wallet={address} network={cfg.network} all_match={ok}")
    return 0 if ok else 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(main()))
