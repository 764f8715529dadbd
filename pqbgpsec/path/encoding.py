"""
Canonical wire encoding of path segments.

Layout (big endian)::

    "PQPS" | version:u8 | suite:u8 | ordinal:u32
    | len:u16 origin | len:u16 next_hop | len:u16 next_hop_key_id
    | len:u16 previous_digest | len:u32 payload

Text fields are UTF-8. Every field is length-prefixed and the order is fixed,
so two segments encode to the same bytes exactly when they are equal.
Decoding is strict: unknown suites, invalid UTF-8 or trailing bytes are
rejected, which keeps decode and encode inverse to each other.
"""

import struct
from typing import Dict

from ..errors import DecodeError
from .types import PathSegment

MAGIC = b"PQPS"
VERSION = 1

SUITE_IDS: Dict[str, int] = {
    "ecdsa-p256": 0x01,
    "ed25519": 0x02,
    "ed448": 0x03,
    "falcon512": 0x10,
    "falcon1024": 0x11,
    "ml-dsa-44": 0x20,
    "ml-dsa-65": 0x21,
}
_SUITE_NAMES = {v: k for k, v in SUITE_IDS.items()}

_HEADER = struct.Struct(">4sBBI")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")


def suite_id(algorithm: str) -> int:
    try:
        return SUITE_IDS[algorithm]
    except KeyError:
        raise ValueError(f"no path signature suite for algorithm {algorithm}") from None


def _short(data: bytes, name: str) -> bytes:
    if len(data) > 0xFFFF:
        raise ValueError(f"{name} too long")
    return _U16.pack(len(data)) + data


def encode_segment(segment: PathSegment) -> bytes:
    """Return the canonical bytes of ``segment``; ValueError if unencodable."""
    if not 0 <= segment.ordinal <= 0xFFFFFFFF:
        raise ValueError("ordinal out of range")
    if len(segment.payload) > 0xFFFFFFFF:
        raise ValueError("payload too long")
    return b"".join((
        _HEADER.pack(MAGIC, VERSION, suite_id(segment.algorithm), segment.ordinal),
        _short(segment.origin.encode("utf-8"), "origin"),
        _short(segment.next_hop.encode("utf-8"), "next_hop"),
        _short(segment.next_hop_key_id.encode("utf-8"), "next_hop_key_id"),
        _short(segment.previous_digest, "previous_digest"),
        _U32.pack(len(segment.payload)),
        segment.payload,
    ))


class _Reader:
    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0

    def take(self, n: int) -> bytes:
        end = self.offset + n
        if end > len(self.data):
            raise DecodeError("segment truncated")
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def short(self) -> bytes:
        (length,) = _U16.unpack(self.take(_U16.size))
        return self.take(length)

    def text(self) -> str:
        try:
            return self.short().decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"segment text field is not UTF-8: {e}") from e


def decode_segment(data: bytes) -> PathSegment:
    """Parse canonical bytes back into a PathSegment; DecodeError if malformed."""
    reader = _Reader(bytes(data))
    magic, version, suite, ordinal = _HEADER.unpack(reader.take(_HEADER.size))
    if magic != MAGIC:
        raise DecodeError("bad segment magic")
    if version != VERSION:
        raise DecodeError(f"unsupported segment version {version}")
    algorithm = _SUITE_NAMES.get(suite)
    if algorithm is None:
        raise DecodeError(f"unknown signature suite {suite:#x}")
    origin = reader.text()
    next_hop = reader.text()
    next_hop_key_id = reader.text()
    previous_digest = reader.short()
    (payload_len,) = _U32.unpack(reader.take(_U32.size))
    payload = reader.take(payload_len)
    if reader.offset != len(reader.data):
        raise DecodeError("trailing bytes after segment")
    return PathSegment(
        ordinal=ordinal,
        origin=origin,
        next_hop=next_hop,
        algorithm=algorithm,
        payload=payload,
        next_hop_key_id=next_hop_key_id,
        previous_digest=previous_digest,
    )


__all__ = ["MAGIC", "VERSION", "SUITE_IDS", "suite_id", "encode_segment", "decode_segment"]
