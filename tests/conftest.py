"""Shared fixtures: deterministic keys, real transactions, an in-memory wallet."""

import pytest
from coincurve import PrivateKey

from a2a_bsv.beef import encode_atomic
from a2a_bsv.config import WalletConfig
from a2a_bsv.keys import identity_key_from_root, p2pkh_locking_script
from a2a_bsv.merkle_path import translate_tsc_proof
from a2a_bsv.transaction import Transaction, TxInput, TxOutput


SENDER_SECRET = "11" * 32
RECIPIENT_SECRET = "22" * 32
COINBASE_TXID = "00" * 32
BLOCK_HEIGHT = 850_000


def _change_script() -> bytes:
    return p2pkh_locking_script(PrivateKey.from_hex("33" * 32).public_key)


def make_proven_tx(satoshis: int = 10_000, index: int = 1, siblings=None, tag: bytes = b"\x01"):
    """A confirmed coinbase-like transaction with a merkle path attached."""
    tx = Transaction(
        inputs=[TxInput(COINBASE_TXID, 0xFFFFFFFF, b"\x03" + tag * 3)],
        outputs=[TxOutput(satoshis, _change_script())],
    )
    nodes = siblings if siblings is not None else ["ab" * 32, "cd" * 32]
    tx.merkle_path = translate_tsc_proof(index, nodes, BLOCK_HEIGHT, txid=tx.txid)
    return tx


def make_spend(parent: Transaction, outputs, vout: int = 0):
    return Transaction(
        inputs=[TxInput(parent.txid, vout, b"\x00" * 4)],
        outputs=list(outputs),
    )


class FakeWallet:
    """In-memory WalletCollaborator and OutputImporter returning real Atomic BEEF bytes."""

    def __init__(self, fund: bool = True, accepted: bool = True, error: Exception = None):
        self.fund = fund
        self.accepted = accepted
        self.error = error
        self.created = []
        self.internalized = []
        self.inserted = []
        self.closed = False

    def create_funding_output(self, locking_script_hex, satoshis, description, metadata):
        self.created.append({
            "locking_script_hex": locking_script_hex,
            "satoshis": satoshis,
            "description": description,
            "metadata": dict(metadata),
        })
        if not self.fund:
            return None
        parent = make_proven_tx(satoshis + 1_000, tag=bytes([len(self.created) % 256]))
        child = make_spend(parent, [
            TxOutput(satoshis, bytes.fromhex(locking_script_hex)),
            TxOutput(900, _change_script()),
        ])
        return encode_atomic([parent, child], child.txid)

    def internalize_payment(self, envelope, output_index, derivation_prefix, derivation_suffix,
                            sender_identity_key, description):
        self.internalized.append({
            "envelope": envelope,
            "output_index": output_index,
            "derivation_prefix": derivation_prefix,
            "derivation_suffix": derivation_suffix,
            "sender_identity_key": sender_identity_key,
            "description": description,
        })
        if self.error is not None:
            raise self.error
        return {"accepted": self.accepted}

    def insert_output(self, envelope, output_index, basket, description,
                      custom_instructions=None, tags=()):
        self.inserted.append({
            "envelope": envelope,
            "output_index": output_index,
            "basket": basket,
            "description": description,
            "custom_instructions": custom_instructions,
            "tags": list(tags),
        })
        if self.error is not None:
            raise self.error
        return {"accepted": self.accepted}

    def close(self):
        self.closed = True


@pytest.fixture
def sender_key():
    return PrivateKey.from_hex(SENDER_SECRET)


@pytest.fixture
def recipient_key():
    return PrivateKey.from_hex(RECIPIENT_SECRET)


@pytest.fixture
def recipient_identity(recipient_key):
    return identity_key_from_root(recipient_key)


@pytest.fixture
def sender_identity(sender_key):
    return identity_key_from_root(sender_key)


@pytest.fixture
def fake_wallet():
    return FakeWallet()


@pytest.fixture
def proven_tx():
    return make_proven_tx


@pytest.fixture
def spend():
    return make_spend


@pytest.fixture
def wallet_config(tmp_path):
    return WalletConfig(network="testnet", storage_dir=tmp_path / "wallet")


@pytest.fixture
def make_wallet():
    return FakeWallet
