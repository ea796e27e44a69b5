"""
Wallet configuration.

Values come from environment variables with sensible defaults:

    BSV_NETWORK             mainnet | testnet (default: mainnet)
    BSV_WALLET_DIR          identity file directory (default: ~/.a2a-bsv/wallet)
    BSV_WALLET_URL          BRC-100 wallet HTTP endpoint (default: http://localhost:3321)
    BSV_WALLET_ORIGINATOR   Originator header sent to the wallet (optional)
    BSV_WALLET_TIMEOUT      request timeout in seconds (default: 30)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .wallet_client import DEFAULT_WALLET_URL


NETWORKS = ("mainnet", "testnet")
DEFAULT_NETWORK = "mainnet"
DEFAULT_STORAGE_DIR = Path.home() / ".a2a-bsv" / "wallet"
DEFAULT_TIMEOUT_SECONDS = 30.0


def to_chain(network: str) -> str:
    """Map 'mainnet'/'testnet' to the 'main'/'test' chain name."""
    return "main" if network == "mainnet" else "test"


@dataclass
class WalletConfig:
    network: str = DEFAULT_NETWORK
    storage_dir: Path = DEFAULT_STORAGE_DIR
    root_key_hex: Optional[str] = None
    wallet_url: str = DEFAULT_WALLET_URL
    originator: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self):
        if self.network not in NETWORKS:
            raise ValueError(f"Unknown network: {self.network} (expected one of {', '.join(NETWORKS)})")
        self.storage_dir = Path(self.storage_dir).expanduser()

    @property
    def chain(self) -> str:
        return to_chain(self.network)

    @classmethod
    def from_env(cls, **overrides) -> "WalletConfig":
        values = {
            "network": os.getenv("BSV_NETWORK", DEFAULT_NETWORK),
            "storage_dir": os.getenv("BSV_WALLET_DIR") or DEFAULT_STORAGE_DIR,
            "wallet_url": os.getenv("BSV_WALLET_URL", DEFAULT_WALLET_URL),
            "originator": os.getenv("BSV_WALLET_ORIGINATOR") or None,
            "timeout_seconds": float(os.getenv("BSV_WALLET_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS))),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
