"""
Persisted wallet identity (``wallet-identity.json``).

The file holds the root private key, so it is written owner-only inside an
owner-only directory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from coincurve import PrivateKey

from .config import WalletConfig
from .errors import A2AError, WalletNotFoundError
from .keys import generate_root_key, identity_key_from_root, load_root_key
from .storage import read_json, write_private_json

logger = logging.getLogger(__name__)

IDENTITY_FILE = "wallet-identity.json"


@dataclass(frozen=True)
class WalletIdentity:
    root_key_hex: str
    identity_key: str
    network: str

    @property
    def root_key(self) -> PrivateKey:
        return load_root_key(self.root_key_hex)

    def to_dict(self) -> dict:
        return {
            "rootKeyHex": self.root_key_hex,
            "identityKey": self.identity_key,
            "network": self.network,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WalletIdentity":
        return cls(
            root_key_hex=data["rootKeyHex"],
            identity_key=data["identityKey"],
            network=data["network"],
        )


def identity_path(config: WalletConfig) -> Path:
    return config.storage_dir / IDENTITY_FILE


def identity_exists(config: WalletConfig) -> bool:
    return identity_path(config).exists()


def create_identity(config: WalletConfig) -> WalletIdentity:
    """Create and persist a new identity, using ``config.root_key_hex`` if set.

    Refuses to overwrite an existing identity file.
    """
    if identity_exists(config):
        raise A2AError(
            f"A wallet already exists at {config.storage_dir}",
            field="storage_dir",
            expected="directory without wallet-identity.json",
        )
    root_key = load_root_key(config.root_key_hex) if config.root_key_hex else generate_root_key()
    identity = WalletIdentity(
        root_key_hex=root_key.secret.hex(),
        identity_key=identity_key_from_root(root_key),
        network=config.network,
    )
    path = identity_path(config)
    write_private_json(path, identity.to_dict())
    logger.info("Wallet identity created at %s (%s)", path, identity.identity_key)
    return identity


def load_identity(config: WalletConfig) -> WalletIdentity:
    path = identity_path(config)
    if not path.exists():
        raise WalletNotFoundError(str(config.storage_dir))

    try:
        identity = WalletIdentity.from_dict(read_json(path))
    except (KeyError, ValueError) as e:
        # json.JSONDecodeError is a ValueError
        raise A2AError(
            f"Wallet identity file {path} is corrupt: {e}",
            field="identity",
            expected="JSON object with rootKeyHex, identityKey, network",
        ) from e

    root_key_hex = config.root_key_hex or identity.root_key_hex
    try:
        root_key = load_root_key(root_key_hex)
    except ValueError as e:
        raise A2AError(f"Wallet identity file {path} has an invalid root key", field="rootKeyHex") from e

    derived = identity_key_from_root(root_key)
    if derived != identity.identity_key.lower():
        raise A2AError(
            f"Identity key in {path} does not match its root key",
            field="identityKey",
            expected=derived,
        )
    if identity.network != config.network:
        logger.warning(
            "Wallet at %s was created for %s but is loaded for %s",
            config.storage_dir, identity.network, config.network,
        )
    return WalletIdentity(root_key_hex=root_key.secret.hex(), identity_key=derived, network=config.network)
