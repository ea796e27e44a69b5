"""
Import of an external, confirmed UTXO (faucet, exchange withdrawal).

The output pays the P2PKH address of the identity key, not a BRC-29
derived script, so the wallet tracks it by basket insertion rather than as a
``wallet payment``. The transaction travels with a merkle path reconstructed
from the explorer's TSC proof.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from .beef import encode_atomic
from .errors import ProofReconstructionError, UtxoImportError, WalletError
from .explorer import WhatsOnChainClient
from .merkle_path import merkle_path_from_tsc
from .transaction import Transaction
from .wallet_client import OutputImporter

logger = logging.getLogger(__name__)

IMPORT_BASKET = "imported funds"
IMPORT_TAG = "imported"
IMPORT_DESCRIPTION = "External funding import"

_TXID_RE = re.compile(r"^[0-9a-f]{64}$")


@dataclass
class ImportResult:
    txid: str
    vout: int
    satoshis: int
    block_height: int
    confirmations: int
    imported: bool
    explorer: str

    def to_dict(self) -> dict:
        return {
            "txid": self.txid,
            "vout": self.vout,
            "satoshis": self.satoshis,
            "blockHeight": self.block_height,
            "confirmations": self.confirmations,
            "imported": self.imported,
            "explorer": self.explorer,
        }


def import_external_utxo(
    wallet: OutputImporter,
    explorer: WhatsOnChainClient,
    txid: str,
    identity_key: str,
    vout: int = 0,
) -> ImportResult:
    txid = txid.strip().lower() if isinstance(txid, str) else txid
    if not isinstance(txid, str) or not _TXID_RE.match(txid):
        raise UtxoImportError("Invalid txid: must be 64 hex characters", field="txid", expected="64 hex characters")
    if isinstance(vout, bool) or not isinstance(vout, int) or vout < 0:
        raise UtxoImportError(f"Invalid output index: {vout!r}", field="vout", expected="non-negative integer")

    info = explorer.get_tx_info(txid)
    confirmations = info.get("confirmations") or 0
    if confirmations < 1:
        raise UtxoImportError(
            f"Transaction {txid} is unconfirmed ({confirmations} confirmations). "
            "Wait for at least 1 confirmation before importing."
        )
    block_height = info.get("blockheight")
    if isinstance(block_height, bool) or not isinstance(block_height, int):
        raise UtxoImportError(f"Explorer returned no block height for {txid}")

    try:
        tx = Transaction.from_hex(explorer.get_raw_tx(txid))
    except ValueError as e:
        raise UtxoImportError(f"Explorer returned an unparseable transaction: {e}") from e
    if tx.txid != txid:
        raise UtxoImportError(f"Explorer returned transaction {tx.txid} instead of {txid}")
    if vout >= len(tx.outputs):
        raise UtxoImportError(
            f"Output index {vout} not found in transaction (has {len(tx.outputs)} outputs)",
            field="vout",
            expected=f"index < {len(tx.outputs)}",
        )

    proofs = explorer.get_tsc_proof(txid)
    if not isinstance(proofs, list) or not proofs or not isinstance(proofs[0], dict):
        raise UtxoImportError("No merkle proof available for this transaction")
    proof = dict(proofs[0])
    if not proof.get("txOrId"):
        proof["txOrId"] = txid

    try:
        merkle_path = merkle_path_from_tsc(proof, block_height)
    except ProofReconstructionError as e:
        raise UtxoImportError(f"Merkle proof is unusable: {e}", field=e.field, expected=e.expected) from e
    if not merkle_path.contains(txid):
        raise UtxoImportError(f"Merkle proof does not belong to {txid}")

    tx.merkle_path = merkle_path
    envelope = encode_atomic([tx], txid)

    # tells the wallet how to unlock it later: plain P2PKH under the identity key
    instructions = {"type": "P2PKH", "identityKey": identity_key, "txid": txid, "vout": vout}
    try:
        result = wallet.insert_output(
            envelope,
            vout,
            IMPORT_BASKET,
            IMPORT_DESCRIPTION,
            custom_instructions=json.dumps(instructions, separators=(",", ":")),
            tags=[IMPORT_TAG],
        )
    except WalletError as e:
        raise UtxoImportError(f"Failed to import UTXO: {e}") from e
    if result.get("accepted") is not True:
        raise UtxoImportError(f"Failed to import UTXO: wallet did not accept {txid}:{vout}")

    satoshis = tx.outputs[vout].satoshis
    logger.info("Imported %s:%d (%d sats, block %d)", txid, vout, satoshis, block_height)
    return ImportResult(
        txid=txid,
        vout=vout,
        satoshis=satoshis,
        block_height=block_height,
        confirmations=confirmations,
        imported=True,
        explorer=explorer.tx_url(txid),
    )
