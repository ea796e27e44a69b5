"""Key format helpers: identity keys, root keys, hash160 and P2PKH."""

from __future__ import annotations

import hashlib
import re
import secrets

import base58
from coincurve import PrivateKey, PublicKey


IDENTITY_KEY_RE = re.compile(r"^0[23][0-9a-fA-F]{64}$")
ROOT_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")

# P2PKH address version bytes
ADDRESS_PREFIX = {"mainnet": b"\x00", "testnet": b"\x6f"}


def is_identity_key(value: object) -> bool:
    """Format check only; see ``parse_public_key`` for the curve check."""
    return isinstance(value, str) and IDENTITY_KEY_RE.match(value) is not None


def parse_public_key(value: str) -> PublicKey:
    """Parse a compressed public key hex string. Raises ValueError if off-curve."""
    if not is_identity_key(value):
        raise ValueError(f"not a compressed public key: {value!r}")
    return PublicKey(bytes.fromhex(value))


def generate_root_key() -> PrivateKey:
    return PrivateKey(secrets.token_bytes(32))


def load_root_key(root_key_hex: str) -> PrivateKey:
    candidate = root_key_hex.strip()
    if candidate.startswith("0x"):
        candidate = candidate[2:]
    if not ROOT_KEY_RE.match(candidate):
        raise ValueError("Root key must be a 32-byte hex string")
    return PrivateKey.from_hex(candidate)


def identity_key_from_root(root_key: PrivateKey) -> str:
    return root_key.public_key.format(compressed=True).hex()


def hash160(data: bytes) -> bytes:
    """sha256 followed by ripemd160"""
    return hashlib.new("ripemd160", hashlib.sha256(data).digest()).digest()


def p2pkh_locking_script(pubkey: PublicKey) -> bytes:
    # OP_DUP OP_HASH160 <20> OP_EQUALVERIFY OP_CHECKSIG
    return b"\x76\xa9\x14" + hash160(pubkey.format(compressed=True)) + b"\x88\xac"


def p2pkh_address(pubkey: PublicKey, network: str = "mainnet") -> str:
    try:
        prefix = ADDRESS_PREFIX[network]
    except KeyError:
        raise ValueError(f"Unknown network: {network}") from None
    return base58.b58encode_check(prefix + hash160(pubkey.format(compressed=True))).decode("ascii")
