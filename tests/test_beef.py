"""Tests for the BEEF / Atomic BEEF envelope codec."""

import base64
import struct

import pytest

from a2a_bsv.beef import (
    ATOMIC_BEEF,
    BEEF_V1,
    BEEF_V2,
    decode,
    decode_transport,
    encode_atomic,
    from_transport_string,
    to_transport_string,
)
from a2a_bsv.errors import MalformedEnvelopeError, TransportParseError
from a2a_bsv.merkle_path import MerklePath, MerklePathLeaf, translate_tsc_proof
from a2a_bsv.transaction import TxInput, TxOutput, hex_to_hash, ser_varint


def _plain_beef_v1(txs, bumps=()):
    """Non-atomic BEEF V1 written by hand, so decode is checked independently of encode."""
    out = [struct.pack("<I", BEEF_V1), ser_varint(len(bumps))]
    out.extend(b.to_bytes() for b in bumps)
    out.append(ser_varint(len(txs)))
    for tx, bump_index in txs:
        out.append(tx.serialize())
        out.append(b"\x00" if bump_index is None else b"\x01" + ser_varint(bump_index))
    return b"".join(out)


class TestTransport:
    @pytest.mark.parametrize("data", [b"", b"\x00", bytes(range(256)), b"\xef\xbe" * 100])
    def test_round_trip(self, data):
        assert from_transport_string(to_transport_string(data)) == data

    def test_surrounding_whitespace_ignored(self):
        assert from_transport_string("  AAEC\n") == b"\x00\x01\x02"

    @pytest.mark.parametrize("text", ["not base64!", "AAE", "é"])
    def test_invalid_base64(self, text):
        with pytest.raises(TransportParseError):
            from_transport_string(text)

    def test_transport_error_is_malformed_envelope(self):
        assert issubclass(TransportParseError, MalformedEnvelopeError)

    def test_non_string(self):
        with pytest.raises(TransportParseError):
            from_transport_string(b"AAEC")


class TestEncodeDecode:
    def test_single_proven_transaction(self, proven_tx):
        tx = proven_tx()
        envelope = decode(encode_atomic([tx], tx.txid))
        assert envelope.atomic
        assert envelope.terminal_txid == tx.txid
        assert [t.txid for t in envelope.transactions] == [tx.txid]
        assert envelope.terminal_transaction.merkle_path == tx.merkle_path

    @pytest.mark.parametrize("version", [BEEF_V1, BEEF_V2])
    def test_chain_round_trip(self, proven_tx, spend, version):
        parent = proven_tx()
        child = spend(parent, [TxOutput(500, b"\x51"), TxOutput(400, b"\x52")])
        grandchild = spend(child, [TxOutput(300, b"\x53")], vout=1)

        raw = encode_atomic([grandchild, parent, child], grandchild.txid, version=version)
        envelope = decode_transport(to_transport_string(raw))

        assert [t.txid for t in envelope.transactions] == [parent.txid, child.txid, grandchild.txid]
        assert envelope.terminal_txid == grandchild.txid
        assert envelope.transactions[0].is_proven
        assert not envelope.transactions[2].is_proven

    def test_header_layout(self, proven_tx):
        tx = proven_tx()
        raw = encode_atomic([tx], tx.txid)
        assert raw[:4] == struct.pack("<I", ATOMIC_BEEF)
        assert raw[4:36] == hex_to_hash(tx.txid)
        assert raw[36:40] == struct.pack("<I", BEEF_V1)

    def test_only_ancestry_is_encoded(self, proven_tx, spend):
        parent = proven_tx()
        child = spend(parent, [TxOutput(500, b"\x51")])
        unrelated = proven_tx(tag=b"\x09")

        envelope = decode(encode_atomic([unrelated, parent, child], child.txid))
        assert [t.txid for t in envelope.transactions] == [parent.txid, child.txid]

    def test_proven_transaction_stops_recursion(self, proven_tx, spend):
        grandparent = proven_tx(tag=b"\x07")
        parent = spend(grandparent, [TxOutput(900, b"\x51")])
        parent.merkle_path = translate_tsc_proof(0, [], 1, txid=parent.txid)
        child = spend(parent, [TxOutput(800, b"\x52")])

        envelope = decode(encode_atomic([grandparent, parent, child], child.txid))
        assert [t.txid for t in envelope.transactions] == [parent.txid, child.txid]

    def test_shared_bump_written_once(self, proven_tx, spend):
        first = proven_tx(tag=b"\x01")
        second = proven_tx(tag=b"\x02")
        # both transactions proven by the same path object
        bump = MerklePath(block_height=10, path=[[
            MerklePathLeaf(0, first.txid, txid=True),
            MerklePathLeaf(1, second.txid, txid=True),
        ]])
        first.merkle_path = bump
        second.merkle_path = bump
        child = spend(first, [TxOutput(1, b"\x51")])
        child.inputs.append(TxInput(second.txid, 0))

        raw = encode_atomic([first, second, child], child.txid)
        assert raw[40] == 1  # one bump
        envelope = decode(raw)
        assert envelope.transactions[0].merkle_path == envelope.transactions[1].merkle_path

    def test_unknown_terminal(self, proven_tx):
        with pytest.raises(MalformedEnvelopeError):
            encode_atomic([proven_tx()], "ff" * 32)

    def test_txid_only_ancestors_need_v2(self, spend, proven_tx):
        parent = proven_tx()
        child = spend(parent, [TxOutput(1, b"\x51")])
        with pytest.raises(MalformedEnvelopeError):
            encode_atomic([child], child.txid, known_txids=[parent.txid])

        envelope = decode(encode_atomic([child], child.txid, version=BEEF_V2, known_txids=[parent.txid]))
        assert envelope.known_txids == [parent.txid]
        assert envelope.terminal_txid == child.txid


class TestDecodeRejects:
    def test_empty(self):
        with pytest.raises(MalformedEnvelopeError, match="empty"):
            decode(b"")

    def test_truncated(self, proven_tx):
        tx = proven_tx()
        raw = encode_atomic([tx], tx.txid)
        with pytest.raises(MalformedEnvelopeError):
            decode(raw[:-3])

    def test_trailing_bytes(self, proven_tx):
        tx = proven_tx()
        with pytest.raises(MalformedEnvelopeError, match="trailing"):
            decode(encode_atomic([tx], tx.txid) + b"\x00")

    def test_unknown_version(self):
        with pytest.raises(MalformedEnvelopeError, match="version"):
            decode(b"\x01\x02\x03\x04\x00\x00")

    def test_no_transactions(self):
        with pytest.raises(MalformedEnvelopeError, match="no transactions"):
            decode(struct.pack("<I", BEEF_V1) + b"\x00\x00")

    def test_missing_ancestor(self, proven_tx, spend):
        parent = proven_tx()
        child = spend(parent, [TxOutput(1, b"\x51")])
        with pytest.raises(MalformedEnvelopeError, match="spends"):
            decode(_plain_beef_v1([(child, None)]))

    def test_bump_index_out_of_range(self, proven_tx):
        tx = proven_tx()
        with pytest.raises(MalformedEnvelopeError, match="out of range"):
            decode(_plain_beef_v1([(tx, 1)], bumps=[tx.merkle_path]))

    def test_bump_not_containing_transaction(self, proven_tx):
        tx = proven_tx()
        other = proven_tx(tag=b"\x05")
        with pytest.raises(MalformedEnvelopeError, match="does not contain"):
            decode(_plain_beef_v1([(tx, 0)], bumps=[other.merkle_path]))

    def test_atomic_txid_not_last(self, proven_tx, spend):
        parent = proven_tx()
        child = spend(parent, [TxOutput(1, b"\x51")])
        body = _plain_beef_v1([(parent, 0), (child, None)], bumps=[parent.merkle_path])
        raw = struct.pack("<I", ATOMIC_BEEF) + hex_to_hash(parent.txid) + body
        with pytest.raises(MalformedEnvelopeError, match="not the last"):
            decode(raw)

    def test_atomic_txid_absent(self, proven_tx):
        tx = proven_tx()
        body = _plain_beef_v1([(tx, 0)], bumps=[tx.merkle_path])
        raw = struct.pack("<I", ATOMIC_BEEF) + b"\x11" * 32 + body
        with pytest.raises(MalformedEnvelopeError, match="not in the envelope"):
            decode(raw)

    def test_plain_beef_terminal_is_last(self, proven_tx, spend):
        parent = proven_tx()
        child = spend(parent, [TxOutput(1, b"\x51")])
        envelope = decode(_plain_beef_v1([(parent, 0), (child, None)], bumps=[parent.merkle_path]))
        assert not envelope.atomic
        assert envelope.terminal_txid == child.txid

    def test_bump_leaf_without_txid_flag(self, proven_tx):
        tx = proven_tx()
        bump = MerklePath(10, [[MerklePathLeaf(0, tx.txid), MerklePathLeaf(1, "aa" * 32)]])
        raw = _plain_beef_v1([(tx, 0)], bumps=[bump])
        assert raw[4:7] == b"\x01\x0a\x01"  # one bump, height 10, one level
        envelope = decode(raw)
        assert envelope.terminal_txid == tx.txid
        assert envelope.terminal_transaction.merkle_path.path[0][0].txid is False

    def test_errors_name_the_envelope_field(self):
        with pytest.raises(MalformedEnvelopeError) as exc:
            decode(base64.b64decode("AAAA"))
        assert exc.value.field == "beef"
