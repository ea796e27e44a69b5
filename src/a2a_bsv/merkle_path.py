"""
Merkle paths: TSC proof translation, BUMP (BRC-74) codec, root computation.

Block explorers such as WhatsOnChain return inclusion proofs in the TSC form:
the transaction's index in the block plus the sibling hashes on the way to the
root, bottom-up, with "*" standing for "no distinct sibling" (the odd node at
the end of a level is paired with itself).

Wallets consume the level-structured form instead. Level 0 holds the
transaction leaf and its sibling; each higher level holds the one sibling
needed to climb. Offsets are node positions within their level.
"""

from __future__ import annotations

import re
import struct
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from .errors import ProofReconstructionError
from .transaction import ByteReader, Transaction, hash_to_hex, hex_to_hash, ser_varint, sha256d


DUPLICATE_MARKER = "*"

# BUMP leaf flags
FLAG_HASH = 0x00
FLAG_DUPLICATE = 0x01
FLAG_TXID = 0x02

_HASH_RE = re.compile(r"^[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class MerklePathLeaf:
    """One node descriptor within a merkle path level."""

    offset: int
    hash: Optional[str] = None
    txid: bool = False
    duplicate: bool = False


@dataclass
class MerklePath:
    """Merkle proof for one or more transactions in the block at ``block_height``."""

    block_height: int
    path: list[list[MerklePathLeaf]]

    @property
    def txids(self) -> list[str]:
        if not self.path:
            return []
        return [leaf.hash for leaf in self.path[0] if leaf.txid and leaf.hash]

    def contains(self, txid: str) -> bool:
        # the txid flag is optional in BUMP; a plain hash leaf counts too
        if not self.path:
            return False
        wanted = txid.lower()
        return any(leaf.hash is not None and leaf.hash.lower() == wanted for leaf in self.path[0])

    def _tx_leaf(self, txid: str) -> MerklePathLeaf:
        if not self.path:
            raise ValueError("merkle path has no levels")
        for leaf in self.path[0]:
            if leaf.hash is not None and leaf.hash.lower() == txid.lower():
                return leaf
        # a translated path built without the txid carries an unhashed tx leaf
        unhashed = [leaf for leaf in self.path[0] if leaf.txid and leaf.hash is None]
        if len(unhashed) == 1:
            return unhashed[0]
        raise ValueError(f"txid {txid} is not a leaf of this merkle path")

    def _find_or_compute(self, height: int, offset: int) -> Optional[MerklePathLeaf]:
        for leaf in self.path[height]:
            if leaf.offset == offset:
                return leaf
        if height == 0:
            return None
        left = self._find_or_compute(height - 1, offset << 1)
        if left is None or left.hash is None:
            return None
        right = self._find_or_compute(height - 1, (offset << 1) + 1)
        if right is None:
            return None
        left_hash = hex_to_hash(left.hash)
        right_hash = left_hash if right.duplicate else hex_to_hash(right.hash)
        return MerklePathLeaf(offset=offset, hash=hash_to_hex(sha256d(left_hash + right_hash)))

    def compute_root(self, txid: Optional[str] = None) -> str:
        """Recompute the merkle root (display hex) starting from ``txid``."""
        if txid is None:
            known = self.txids
            if not known:
                raise ValueError("txid required: merkle path has no hashed transaction leaf")
            txid = known[0]
        index = self._tx_leaf(txid).offset

        # single-transaction block: the txid is the root
        if len(self.path) == 1 and len(self.path[0]) == 1:
            return txid.lower()

        working = hex_to_hash(txid)
        for height in range(len(self.path)):
            offset = (index >> height) ^ 1
            sibling = self._find_or_compute(height, offset)
            if sibling is None:
                raise ValueError(f"missing hash for offset {offset} at height {height}")
            if sibling.duplicate:
                working = sha256d(working + working)
            elif offset % 2:
                working = sha256d(working + hex_to_hash(sibling.hash))
            else:
                working = sha256d(hex_to_hash(sibling.hash) + working)
        return hash_to_hex(working)

    def to_bytes(self) -> bytes:
        if len(self.path) > 0xFF:
            raise ValueError(f"tree height {len(self.path)} does not fit in one byte")
        out = [ser_varint(self.block_height), struct.pack("B", len(self.path))]
        for height, level in enumerate(self.path):
            out.append(ser_varint(len(level)))
            for leaf in level:
                out.append(ser_varint(leaf.offset))
                if leaf.duplicate:
                    out.append(struct.pack("B", FLAG_DUPLICATE))
                    continue
                if leaf.hash is None:
                    raise ValueError(f"leaf at height {height} offset {leaf.offset} has no hash to serialize")
                out.append(struct.pack("B", FLAG_TXID if leaf.txid else FLAG_HASH))
                out.append(hex_to_hash(leaf.hash))
        return b"".join(out)

    @classmethod
    def read_from(cls, reader: ByteReader) -> "MerklePath":
        block_height = reader.read_varint()
        tree_height = reader.read_u8()
        path = []
        for _ in range(tree_height):
            level = []
            for _ in range(reader.read_varint()):
                offset = reader.read_varint()
                flags = reader.read_u8()
                if flags & FLAG_DUPLICATE:
                    level.append(MerklePathLeaf(offset=offset, duplicate=True))
                elif flags in (FLAG_HASH, FLAG_TXID):
                    level.append(MerklePathLeaf(
                        offset=offset,
                        hash=hash_to_hex(reader.read(32)),
                        txid=flags == FLAG_TXID,
                    ))
                else:
                    raise ValueError(f"unknown merkle leaf flags 0x{flags:02x}")
            level.sort(key=lambda leaf: leaf.offset)
            path.append(level)
        return cls(block_height=block_height, path=path)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "MerklePath":
        reader = ByteReader(raw)
        merkle_path = cls.read_from(reader)
        if not reader.eof():
            raise ValueError(f"{reader.remaining} unexpected trailing bytes after merkle path")
        return merkle_path


def translate_tsc_proof(
    leaf_index: int,
    sibling_hashes: Sequence[str],
    block_height: int,
    txid: Optional[str] = None,
) -> MerklePath:
    """Convert a TSC proof (index + bottom-up sibling list) into a MerklePath.

    The result has one level per sibling. Level 0 holds the transaction leaf and
    its sibling at ``leaf_index ^ 1``, ordered by offset. Level ``i`` holds the
    sibling at ``(leaf_index >> i) ^ 1``. An empty sibling list (a block with a
    single transaction) gives one level containing only the transaction leaf.
    """
    if isinstance(leaf_index, bool) or not isinstance(leaf_index, int) or leaf_index < 0:
        raise ProofReconstructionError(
            f"leaf index must be a non-negative integer, got {leaf_index!r}",
            field="index",
            expected="non-negative integer",
        )
    if isinstance(block_height, bool) or not isinstance(block_height, int) or block_height < 0:
        raise ProofReconstructionError(
            f"block height must be a non-negative integer, got {block_height!r}",
            field="blockHeight",
            expected="non-negative integer",
        )
    if txid is not None and not _HASH_RE.match(txid):
        raise ProofReconstructionError(
            f"txid must be 64 hex characters, got {txid!r}",
            field="txid",
            expected="64 hex characters",
        )

    height = len(sibling_hashes)
    tx_leaf = MerklePathLeaf(offset=leaf_index, hash=txid.lower() if txid else None, txid=True)

    if height == 0:
        if leaf_index != 0:
            raise ProofReconstructionError(
                f"leaf index {leaf_index} is impossible in a single-transaction block",
                field="index",
                expected="0 when the proof has no sibling nodes",
            )
        return MerklePath(block_height=block_height, path=[[tx_leaf]])

    if leaf_index >= 1 << height:
        raise ProofReconstructionError(
            f"leaf index {leaf_index} does not fit a tree of height {height}",
            field="index",
            expected=f"index < {1 << height} for {height} sibling nodes",
        )

    level0 = [tx_leaf, _sibling_leaf(0, leaf_index, sibling_hashes[0])]
    level0.sort(key=lambda leaf: leaf.offset)
    path = [level0]
    for i in range(1, height):
        path.append([_sibling_leaf(i, leaf_index >> i, sibling_hashes[i])])
    return MerklePath(block_height=block_height, path=path)


def _sibling_leaf(level: int, node_index: int, node: Any) -> MerklePathLeaf:
    offset = node_index ^ 1
    if node == DUPLICATE_MARKER:
        # only the last (left) node of a level can be paired with itself
        if node_index & 1:
            raise ProofReconstructionError(
                f"nodes[{level}] is a duplicate marker but node {node_index} is a right child",
                field=f"nodes[{level}]",
                expected="64-hex sibling hash",
            )
        return MerklePathLeaf(offset=offset, duplicate=True)
    if not isinstance(node, str) or not _HASH_RE.match(node):
        raise ProofReconstructionError(
            f"nodes[{level}] must be a 64-hex hash or {DUPLICATE_MARKER!r}, got {node!r}",
            field=f"nodes[{level}]",
            expected=f"64-hex hash or {DUPLICATE_MARKER!r}",
        )
    return MerklePathLeaf(offset=offset, hash=node.lower())


def merkle_path_from_tsc(proof: Mapping[str, Any], block_height: int) -> MerklePath:
    """Translate one WhatsOnChain ``/proof/tsc`` entry."""
    nodes = proof.get("nodes")
    if not isinstance(nodes, list):
        raise ProofReconstructionError(
            "TSC proof nodes must be a list",
            field="nodes",
            expected=f"list of 64-hex hashes or {DUPLICATE_MARKER!r}",
        )

    txid = None
    tx_or_id = proof.get("txOrId")
    if isinstance(tx_or_id, str) and tx_or_id:
        if _HASH_RE.match(tx_or_id):
            txid = tx_or_id
        else:
            try:
                txid = Transaction.from_hex(tx_or_id).txid
            except ValueError as e:
                raise ProofReconstructionError(
                    f"txOrId is neither a txid nor a raw transaction: {e}",
                    field="txOrId",
                    expected="64-hex txid or raw transaction hex",
                ) from e

    return translate_tsc_proof(proof.get("index"), nodes, block_height, txid=txid)
