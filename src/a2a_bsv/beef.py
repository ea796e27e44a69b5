"""
Envelope codec: BEEF (BRC-62 / BRC-96) and Atomic BEEF (BRC-95).

An envelope carries the transaction being paid plus every ancestor
transaction and merkle proof needed to validate it without external lookups.
The atomic header names the one transaction the envelope attests to, which
must be the last transaction in the bundle.

Transport form is plain base64 of the binary envelope.
"""

from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .errors import MalformedEnvelopeError, TransportParseError
from .merkle_path import MerklePath
from .transaction import ByteReader, Transaction, hash_to_hex, hex_to_hash, ser_varint


BEEF_V1 = 0xEFBE0001
BEEF_V2 = 0xEFBE0002
ATOMIC_BEEF = 0x01010101

# BEEF V2 per-transaction format byte
TX_FORMAT_RAW = 0
TX_FORMAT_RAW_WITH_BUMP = 1
TX_FORMAT_TXID_ONLY = 2


@dataclass
class Envelope:
    """A decoded envelope. ``transactions`` are parents-first; the last is the terminal one."""

    transactions: list[Transaction]
    terminal_txid: str
    known_txids: list[str] = field(default_factory=list)
    atomic: bool = False

    @property
    def terminal_transaction(self) -> Transaction:
        return self.transactions[-1]

    def find(self, txid: str) -> Optional[Transaction]:
        for tx in self.transactions:
            if tx.txid == txid:
                return tx
        return None


def to_transport_string(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def from_transport_string(text: str) -> bytes:
    if not isinstance(text, str):
        raise TransportParseError(f"expected a base64 string, got {type(text).__name__}")
    try:
        return base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise TransportParseError(f"envelope is not valid base64: {e}") from e


def decode(data: bytes) -> Envelope:
    """Decode BEEF or Atomic BEEF bytes, enforcing the envelope invariants."""
    if not data:
        raise MalformedEnvelopeError("envelope is empty", expected="BEEF or Atomic BEEF bytes")
    reader = ByteReader(data)
    try:
        return _read_envelope(reader)
    except ValueError as e:
        raise MalformedEnvelopeError(f"truncated or corrupt envelope: {e}") from e


def decode_transport(text: str) -> Envelope:
    return decode(from_transport_string(text))


def _read_envelope(reader: ByteReader) -> Envelope:
    atomic_txid = None
    version = reader.read_u32()
    if version == ATOMIC_BEEF:
        atomic_txid = hash_to_hex(reader.read(32))
        version = reader.read_u32()
    if version not in (BEEF_V1, BEEF_V2):
        raise MalformedEnvelopeError(
            f"unknown BEEF version 0x{version:08x}",
            expected="BEEF V1 (0xefbe0001) or V2 (0xefbe0002), optionally behind an atomic header",
        )

    bumps = [MerklePath.read_from(reader) for _ in range(reader.read_varint())]

    transactions: list[Transaction] = []
    known_txids: list[str] = []
    for _ in range(reader.read_varint()):
        if version == BEEF_V1:
            tx = Transaction.read_from(reader)
            bump_index = reader.read_varint() if reader.read_u8() != 0 else None
        else:
            fmt = reader.read_u8()
            if fmt == TX_FORMAT_TXID_ONLY:
                known_txids.append(hash_to_hex(reader.read(32)))
                continue
            if fmt == TX_FORMAT_RAW_WITH_BUMP:
                bump_index = reader.read_varint()
            elif fmt == TX_FORMAT_RAW:
                bump_index = None
            else:
                raise MalformedEnvelopeError(f"unknown transaction format byte {fmt}")
            tx = Transaction.read_from(reader)

        if bump_index is not None:
            if bump_index >= len(bumps):
                raise MalformedEnvelopeError(
                    f"bump index {bump_index} out of range ({len(bumps)} bumps)"
                )
            if not bumps[bump_index].contains(tx.txid):
                raise MalformedEnvelopeError(
                    f"bump {bump_index} does not contain transaction {tx.txid}"
                )
            tx.merkle_path = bumps[bump_index]
        transactions.append(tx)

    if not reader.eof():
        raise MalformedEnvelopeError(f"{reader.remaining} unexpected trailing bytes after envelope")
    if not transactions:
        raise MalformedEnvelopeError("envelope contains no transactions")

    _check_ancestry(transactions, known_txids)

    terminal_txid = transactions[-1].txid
    if atomic_txid is not None and atomic_txid != terminal_txid:
        if any(tx.txid == atomic_txid for tx in transactions):
            reason = f"atomic txid {atomic_txid} is not the last transaction ({terminal_txid})"
        else:
            reason = f"atomic txid {atomic_txid} is not in the envelope"
        raise MalformedEnvelopeError(reason, expected="atomic txid equal to the last transaction's id")

    return Envelope(
        transactions=transactions,
        terminal_txid=terminal_txid,
        known_txids=known_txids,
        atomic=atomic_txid is not None,
    )


def _check_ancestry(transactions: Sequence[Transaction], known_txids: Iterable[str]) -> None:
    present = {tx.txid for tx in transactions}
    present.update(known_txids)
    for tx in transactions:
        if tx.is_proven:
            continue
        for tx_input in tx.inputs:
            if tx_input.source_txid not in present:
                raise MalformedEnvelopeError(
                    f"transaction {tx.txid} spends {tx_input.source_txid}, "
                    "which is neither in the envelope nor proven",
                    expected="every unproven transaction's inputs present in the envelope",
                )


def _ancestry(
    by_txid: dict[str, Transaction],
    terminal_txid: str,
    known_txids: set[str],
) -> tuple[list[Transaction], list[str]]:
    """Parents-first closure of ``terminal_txid``; proven transactions end the climb."""
    ordered: list[Transaction] = []
    referenced_known: list[str] = []
    placed: set[str] = set()
    stack = [(terminal_txid, False)]
    while stack:
        txid, expanded = stack.pop()
        if txid in placed:
            continue
        tx = by_txid[txid]
        if expanded:
            placed.add(txid)
            ordered.append(tx)
            continue
        stack.append((txid, True))
        if tx.is_proven:
            continue
        for tx_input in reversed(tx.inputs):
            source = tx_input.source_txid
            if source in by_txid:
                stack.append((source, False))
            elif source in known_txids and source not in referenced_known:
                referenced_known.append(source)
    return ordered, referenced_known


def encode_atomic(
    transactions: Sequence[Transaction],
    terminal_txid: str,
    version: int = BEEF_V1,
    known_txids: Iterable[str] = (),
) -> bytes:
    """Serialize exactly the ancestry of ``terminal_txid`` as Atomic BEEF."""
    if version not in (BEEF_V1, BEEF_V2):
        raise ValueError(f"unsupported BEEF version 0x{version:08x}")
    by_txid = {tx.txid: tx for tx in transactions}
    if terminal_txid not in by_txid:
        raise MalformedEnvelopeError(
            f"terminal txid {terminal_txid} is not among the transactions",
            expected="terminal txid of one of the supplied transactions",
        )

    ordered, referenced_known = _ancestry(by_txid, terminal_txid, set(known_txids))
    if referenced_known and version == BEEF_V1:
        raise MalformedEnvelopeError(
            "txid-only ancestors cannot be written as BEEF V1",
            expected="BEEF V2 when ancestors are known by txid only",
        )

    bumps: list[MerklePath] = []
    for tx in ordered:
        if tx.merkle_path is None:
            continue
        if not tx.merkle_path.contains(tx.txid):
            raise MalformedEnvelopeError(f"merkle path attached to {tx.txid} does not contain it")
        if tx.merkle_path not in bumps:
            bumps.append(tx.merkle_path)

    out = [
        struct.pack("<I", ATOMIC_BEEF),
        hex_to_hash(terminal_txid),
        struct.pack("<I", version),
        ser_varint(len(bumps)),
    ]
    out.extend(bump.to_bytes() for bump in bumps)
    out.append(ser_varint(len(referenced_known) + len(ordered)))
    for txid in referenced_known:
        out.append(struct.pack("B", TX_FORMAT_TXID_ONLY) + hex_to_hash(txid))
    for tx in ordered:
        raw = tx.serialize()
        bump_index = bumps.index(tx.merkle_path) if tx.merkle_path is not None else None
        if version == BEEF_V1:
            out.append(raw)
            out.append(b"\x00" if bump_index is None else b"\x01" + ser_varint(bump_index))
        elif bump_index is None:
            out.append(struct.pack("B", TX_FORMAT_RAW) + raw)
        else:
            out.append(struct.pack("B", TX_FORMAT_RAW_WITH_BUMP) + ser_varint(bump_index) + raw)
    return b"".join(out)
