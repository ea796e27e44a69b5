"""
Raw transaction serialization.

Byte layout follows the Bitcoin/BSV wire format: little-endian integers,
CompactSize ("varint") length prefixes, and txids displayed as the reversed
double-SHA256 of the raw bytes.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .merkle_path import MerklePath


def sha256d(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash_to_hex(internal: bytes) -> str:
    """Internal byte order -> display hex."""
    return internal[::-1].hex()


def hex_to_hash(display: str) -> bytes:
    """Display hex -> internal byte order."""
    raw = bytes.fromhex(display)
    if len(raw) != 32:
        raise ValueError(f"expected 32-byte hash, got {len(raw)} bytes")
    return raw[::-1]


def ser_varint(n: int) -> bytes:
    if n < 0:
        raise ValueError(f"varint must be non-negative: {n}")
    if n < 253:
        return struct.pack("B", n)
    elif n < 0x10000:
        return struct.pack("<BH", 253, n)
    elif n < 0x100000000:
        return struct.pack("<BI", 254, n)
    else:
        return struct.pack("<BQ", 255, n)


class ByteReader:
    """Sequential reader over a byte string; raises ValueError when data runs out."""

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def eof(self) -> bool:
        return self.pos >= len(self.data)

    def read(self, n: int) -> bytes:
        if n < 0 or self.pos + n > len(self.data):
            raise ValueError(
                f"unexpected end of data: wanted {n} bytes at offset {self.pos}, "
                f"{self.remaining} available"
            )
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def read_u8(self) -> int:
        return self.read(1)[0]

    def read_u32(self) -> int:
        return struct.unpack("<I", self.read(4))[0]

    def read_u64(self) -> int:
        return struct.unpack("<Q", self.read(8))[0]

    def read_varint(self) -> int:
        first = self.read_u8()
        if first < 253:
            return first
        if first == 253:
            return struct.unpack("<H", self.read(2))[0]
        if first == 254:
            return self.read_u32()
        return self.read_u64()

    def read_var_bytes(self) -> bytes:
        return self.read(self.read_varint())


@dataclass
class TxInput:
    source_txid: str
    source_output_index: int
    unlocking_script: bytes = b""
    sequence: int = 0xFFFFFFFF

    def serialize(self) -> bytes:
        return (
            hex_to_hash(self.source_txid)
            + struct.pack("<I", self.source_output_index)
            + ser_varint(len(self.unlocking_script))
            + self.unlocking_script
            + struct.pack("<I", self.sequence)
        )


@dataclass
class TxOutput:
    satoshis: int
    locking_script: bytes

    def serialize(self) -> bytes:
        return (
            struct.pack("<Q", self.satoshis)
            + ser_varint(len(self.locking_script))
            + self.locking_script
        )


@dataclass
class Transaction:
    """A parsed transaction, optionally carrying its merkle proof."""

    version: int = 1
    inputs: list[TxInput] = field(default_factory=list)
    outputs: list[TxOutput] = field(default_factory=list)
    lock_time: int = 0
    merkle_path: Optional["MerklePath"] = field(default=None, compare=False, repr=False)

    def serialize(self) -> bytes:
        parts = [struct.pack("<I", self.version), ser_varint(len(self.inputs))]
        parts.extend(i.serialize() for i in self.inputs)
        parts.append(ser_varint(len(self.outputs)))
        parts.extend(o.serialize() for o in self.outputs)
        parts.append(struct.pack("<I", self.lock_time))
        return b"".join(parts)

    def to_hex(self) -> str:
        return self.serialize().hex()

    @property
    def txid(self) -> str:
        return hash_to_hex(sha256d(self.serialize()))

    @property
    def is_proven(self) -> bool:
        return self.merkle_path is not None

    @classmethod
    def read_from(cls, reader: ByteReader) -> "Transaction":
        version = reader.read_u32()
        inputs = []
        for _ in range(reader.read_varint()):
            source_txid = hash_to_hex(reader.read(32))
            vout = reader.read_u32()
            script = reader.read_var_bytes()
            sequence = reader.read_u32()
            inputs.append(TxInput(source_txid, vout, script, sequence))
        outputs = []
        for _ in range(reader.read_varint()):
            satoshis = reader.read_u64()
            outputs.append(TxOutput(satoshis, reader.read_var_bytes()))
        lock_time = reader.read_u32()
        return cls(version=version, inputs=inputs, outputs=outputs, lock_time=lock_time)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Transaction":
        reader = ByteReader(raw)
        tx = cls.read_from(reader)
        if not reader.eof():
            raise ValueError(f"{reader.remaining} unexpected trailing bytes after transaction")
        return tx

    @classmethod
    def from_hex(cls, raw_hex: str) -> "Transaction":
        return cls.from_bytes(bytes.fromhex(raw_hex.strip()))
