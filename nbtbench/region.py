from __future__ import annotations

"""
Region container (.mca / .mcr).

Layout
- sectors of 4096 bytes; sectors 0 and 1 form the header
- location table: 1024 x u32 (24-bit sector offset || 8-bit sector count)
- timestamp table: 1024 x u32 (seconds since epoch)
- chunk (x, z) lives at table index x + 32 * z

Chunk record, at offset * 4096
- u32 length (compression type byte + payload)
- u8 compression type (1 gzip, 2 zlib, 3 none, 4 lz4)
- payload; for lz4 the payload is u32 uncompressed length || bare LZ4 block

All integers big-endian. An empty file is an empty region.
"""

import struct
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple

from .binary import encode_be
from .constants import (
    SECTOR_SIZE,
    REGION_WIDTH,
    REGION_CHUNKS,
    REGION_HEADER_SIZE,
    MAX_CHUNK_SECTORS,
    CHUNK_EXTERNAL_FLAG,
)
from .errors import DecompressionError, RegionTooLargeError, StructuralParseError
from .formats import ChunkFormat
from .tags import TagCompound


_TABLE_STRUCT = struct.Struct(f">{REGION_CHUNKS}I")
_CHUNK_HDR_STRUCT = struct.Struct(">IB")
_LZ4_LEN_STRUCT = struct.Struct(">I")


@dataclass
class Chunk:
    x: int
    z: int
    root: TagCompound = field(default_factory=TagCompound)
    compression: ChunkFormat = ChunkFormat.ZLIB
    timestamp: int = 0

    def __post_init__(self):
        if not (0 <= self.x < REGION_WIDTH and 0 <= self.z < REGION_WIDTH):
            raise ValueError(f"chunk coordinates ({self.x}, {self.z}) outside the {REGION_WIDTH}x{REGION_WIDTH} grid")
        if not 0 <= self.timestamp <= 0xFFFFFFFF:
            raise ValueError(f"chunk timestamp {self.timestamp} does not fit in u32")
        if not isinstance(self.root, TagCompound):
            raise ValueError(f"chunk root must be a compound, got {type(self.root).__name__}")

    @property
    def index(self) -> int:
        return self.x + REGION_WIDTH * self.z


class Region:
    """A grid of up to 32x32 chunks keyed by (x, z)."""

    def __init__(self, chunks=None):
        self._chunks: Dict[Tuple[int, int], Chunk] = {}
        for chunk in chunks or ():
            self.put(chunk)

    def put(self, chunk: Chunk) -> Optional[Chunk]:
        """Place ``chunk`` at its coordinates and return the chunk it replaced."""
        key = (chunk.x, chunk.z)
        previous = self._chunks.get(key)
        self._chunks[key] = chunk
        return previous

    def get(self, x: int, z: int) -> Optional[Chunk]:
        return self._chunks.get((x, z))

    def remove(self, x: int, z: int) -> Optional[Chunk]:
        return self._chunks.pop((x, z), None)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(sorted(self._chunks.values(), key=lambda c: c.index))

    def __len__(self) -> int:
        return len(self._chunks)

    def __eq__(self, other):
        if not isinstance(other, Region):
            return NotImplemented
        return self._chunks == other._chunks

    def __repr__(self):
        return f"Region({len(self)} chunks)"


def _decode_chunk(data: bytes, x: int, z: int, location: int, timestamp: int) -> Chunk:
    ctx = f"chunk ({x}, {z})"
    sector, count = location >> 8, location & 0xFF
    start = sector * SECTOR_SIZE
    if sector < REGION_HEADER_SIZE // SECTOR_SIZE:
        raise StructuralParseError(f"sector offset {sector} overlaps the region header", offset=x * 4 + z * 128, context=ctx)
    if count == 0:
        raise StructuralParseError("zero sector count", offset=x * 4 + z * 128, context=ctx)
    if start + _CHUNK_HDR_STRUCT.size > len(data):
        raise StructuralParseError(f"sector offset {sector} is past the end of the file", offset=start, context=ctx)

    length, type_id = _CHUNK_HDR_STRUCT.unpack_from(data, start)
    if length < 1 or length > count * SECTOR_SIZE - 4:
        raise StructuralParseError(f"record length {length} does not fit in {count} sector(s)", offset=start, context=ctx)
    end = start + 4 + length
    if end > len(data):
        raise StructuralParseError(f"record length {length} runs past the end of the file", offset=start, context=ctx)
    if type_id & CHUNK_EXTERNAL_FLAG:
        raise StructuralParseError("external (.mcc) chunk storage is not supported", offset=start + 4, context=ctx)

    fmt = ChunkFormat.from_type_id(type_id, context=ctx)
    payload = data[start + _CHUNK_HDR_STRUCT.size : end]
    raw_size = None
    if fmt is ChunkFormat.LZ4:
        if len(payload) < _LZ4_LEN_STRUCT.size:
            raise StructuralParseError("lz4 chunk is missing its length prefix", offset=start + 5, context=ctx)
        (raw_size,) = _LZ4_LEN_STRUCT.unpack_from(payload, 0)
        payload = payload[_LZ4_LEN_STRUCT.size :]

    try:
        root = fmt.decode(payload, raw_size)
    except DecompressionError as e:
        raise DecompressionError(e.codec, f"{ctx} at offset {start}: {e.detail}") from e
    except StructuralParseError as e:
        raise StructuralParseError(str(e), offset=start, context=ctx) from e
    if not isinstance(root, TagCompound):
        raise StructuralParseError(f"chunk root is {type(root).__name__}, expected a compound", offset=start, context=ctx)
    return Chunk(x, z, root, fmt, timestamp)


def decode_region(data: bytes) -> Region:
    data = bytes(data)
    region = Region()
    if not data:
        return region
    if len(data) < REGION_HEADER_SIZE:
        raise StructuralParseError(
            f"region file of {len(data)} bytes is shorter than its {REGION_HEADER_SIZE} byte header", offset=0, context="region"
        )
    locations = _TABLE_STRUCT.unpack_from(data, 0)
    timestamps = _TABLE_STRUCT.unpack_from(data, SECTOR_SIZE)
    for idx, location in enumerate(locations):
        if location == 0:
            continue
        z, x = divmod(idx, REGION_WIDTH)
        region.put(_decode_chunk(data, x, z, location, timestamps[idx]))
    return region


def encode_region(region: Region) -> bytes:
    header = bytearray(REGION_HEADER_SIZE)
    body = bytearray()
    sector = REGION_HEADER_SIZE // SECTOR_SIZE
    for chunk in region:
        raw = encode_be(chunk.root)
        payload = chunk.compression.compress(raw)
        if chunk.compression is ChunkFormat.LZ4:
            payload = _LZ4_LEN_STRUCT.pack(len(raw)) + payload
        record = _CHUNK_HDR_STRUCT.pack(len(payload) + 1, chunk.compression.type_id) + payload
        count = -(-len(record) // SECTOR_SIZE)
        if count > MAX_CHUNK_SECTORS:
            raise RegionTooLargeError(
                f"chunk ({chunk.x}, {chunk.z}) needs {count} sectors, more than the {MAX_CHUNK_SECTORS} a region entry can address"
            )
        record += b"\x00" * (count * SECTOR_SIZE - len(record))
        struct.pack_into(">I", header, chunk.index * 4, (sector << 8) | count)
        struct.pack_into(">I", header, SECTOR_SIZE + chunk.index * 4, chunk.timestamp)
        body += record
        sector += count
    return bytes(header + body)
