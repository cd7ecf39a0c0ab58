from __future__ import annotations

import enum
from typing import Optional, Tuple

from .binary import decode_be, encode_be, encode_le
from .compression import Codec
from .constants import (
    CODEC_GZIP,
    CODEC_ZLIB,
    CODEC_NONE,
    CODEC_LZ4,
    NBT_FILE_TYPE_UV,
    GZIP_FILE_TYPE_UV,
    ZLIB_FILE_TYPE_UV,
    SNBT_FILE_TYPE_UV,
    MCA_FILE_TYPE_UV,
    LITTLE_ENDIAN_NBT_FILE_TYPE_UV,
    LITTLE_ENDIAN_HEADER_NBT_FILE_TYPE_UV,
    LZ4_FILE_TYPE_UV,
)
from .errors import FormatMismatchError, StructuralParseError
from .snbt import stringify


class ContainerFormat(enum.Enum):
    """Whole-file layout of an opened document."""

    NBT = "nbt"
    GZIP = "gzip"
    ZLIB = "zlib"
    SNBT = "snbt"
    LE = "le"
    LE_HEADER = "le-header"
    REGION = "region"

    def cycle(self) -> "ContainerFormat":
        return _CONTAINER_CYCLE[self]

    def rev_cycle(self) -> "ContainerFormat":
        return _CONTAINER_REV_CYCLE[self]

    @property
    def label(self) -> str:
        return _CONTAINER_LABELS[self]

    @property
    def uv(self) -> Tuple[int, int]:
        return _CONTAINER_UVS[self]

    @property
    def dialog_filter_index(self) -> int:
        """Index into FILE_TYPE_FILTERS that a save dialog preselects."""
        return _CONTAINER_FILTER_INDEX[self]

    def encode(self, document) -> bytes:
        from .region import Region, encode_region

        if self is ContainerFormat.REGION:
            if not isinstance(document, Region):
                raise FormatMismatchError(f"{self.label} format requires a region, got {type(document).__name__}")
            return encode_region(document)
        if isinstance(document, Region):
            raise FormatMismatchError(f"a region can only be saved as {ContainerFormat.REGION.label}, not {self.label}")

        if self is ContainerFormat.NBT:
            return encode_be(document)
        if self is ContainerFormat.GZIP:
            return Codec(CODEC_GZIP).compress(encode_be(document))
        if self is ContainerFormat.ZLIB:
            return Codec(CODEC_ZLIB).compress(encode_be(document))
        if self is ContainerFormat.SNBT:
            return stringify(document).encode("utf-8")
        return encode_le(document, with_header=self is ContainerFormat.LE_HEADER)

    def __str__(self) -> str:
        return self.label


_CONTAINER_CYCLE = {
    ContainerFormat.NBT: ContainerFormat.GZIP,
    ContainerFormat.GZIP: ContainerFormat.ZLIB,
    ContainerFormat.ZLIB: ContainerFormat.LE,
    ContainerFormat.LE: ContainerFormat.LE_HEADER,
    ContainerFormat.LE_HEADER: ContainerFormat.SNBT,
    ContainerFormat.SNBT: ContainerFormat.NBT,
    ContainerFormat.REGION: ContainerFormat.REGION,
}
_CONTAINER_REV_CYCLE = {after: before for before, after in _CONTAINER_CYCLE.items()}

_CONTAINER_LABELS = {
    ContainerFormat.NBT: "Uncompressed",
    ContainerFormat.GZIP: "GZip",
    ContainerFormat.ZLIB: "ZLib",
    ContainerFormat.SNBT: "SNBT",
    ContainerFormat.LE: "Little Endian NBT",
    ContainerFormat.LE_HEADER: "Little Endian NBT (With Header)",
    ContainerFormat.REGION: "MCA",
}

_CONTAINER_UVS = {
    ContainerFormat.NBT: NBT_FILE_TYPE_UV,
    ContainerFormat.GZIP: GZIP_FILE_TYPE_UV,
    ContainerFormat.ZLIB: ZLIB_FILE_TYPE_UV,
    ContainerFormat.SNBT: SNBT_FILE_TYPE_UV,
    ContainerFormat.LE: LITTLE_ENDIAN_NBT_FILE_TYPE_UV,
    ContainerFormat.LE_HEADER: LITTLE_ENDIAN_HEADER_NBT_FILE_TYPE_UV,
    ContainerFormat.REGION: MCA_FILE_TYPE_UV,
}

FILE_TYPE_FILTERS = (
    ("Uncompressed NBT File", ("nbt",)),
    ("SNBT File", ("snbt",)),
    ("Region File", ("mca", "mcr")),
    ("Compressed NBT File", ("dat", "dat_old", "dat_new", "dat_mcr", "old", "schem", "schematic", "litematic")),
    ("Little Endian NBT File", ("nbt", "mcstructure")),
    ("Little Endian NBT File (With Header)", ("dat",)),
)

_CONTAINER_FILTER_INDEX = {
    ContainerFormat.NBT: 0,
    ContainerFormat.SNBT: 1,
    ContainerFormat.REGION: 2,
    ContainerFormat.GZIP: 3,
    ContainerFormat.ZLIB: 3,
    ContainerFormat.LE: 4,
    ContainerFormat.LE_HEADER: 5,
}


class ChunkFormat(enum.Enum):
    """Compression of one chunk inside a region; values are the on-disk type byte."""

    GZIP = CODEC_GZIP
    ZLIB = CODEC_ZLIB
    UNCOMPRESSED = CODEC_NONE
    LZ4 = CODEC_LZ4

    @classmethod
    def default(cls) -> "ChunkFormat":
        return cls.ZLIB

    @classmethod
    def from_type_id(cls, type_id: int, context: Optional[str] = None) -> "ChunkFormat":
        try:
            return cls(type_id)
        except ValueError:
            raise StructuralParseError(f"unknown chunk compression type {type_id}", context=context) from None

    @property
    def type_id(self) -> int:
        return self.value

    def cycle(self) -> "ChunkFormat":
        return _CHUNK_CYCLE[self]

    def rev_cycle(self) -> "ChunkFormat":
        return _CHUNK_REV_CYCLE[self]

    @property
    def label(self) -> str:
        return _CHUNK_LABELS[self]

    @property
    def uv(self) -> Tuple[int, int]:
        return _CHUNK_UVS[self]

    def compress(self, raw: bytes) -> bytes:
        return Codec(self.value).compress(raw)

    def encode(self, document) -> bytes:
        """Big-endian NBT, framed by this format. LZ4 output is a bare block."""
        return self.compress(encode_be(document))

    def decode(self, payload: bytes, uncompressed_size: Optional[int] = None):
        return decode_be(Codec(self.value).decompress(payload, uncompressed_size))

    def __str__(self) -> str:
        return self.label


_CHUNK_CYCLE = {
    ChunkFormat.GZIP: ChunkFormat.ZLIB,
    ChunkFormat.ZLIB: ChunkFormat.UNCOMPRESSED,
    ChunkFormat.UNCOMPRESSED: ChunkFormat.LZ4,
    ChunkFormat.LZ4: ChunkFormat.GZIP,
}
_CHUNK_REV_CYCLE = {after: before for before, after in _CHUNK_CYCLE.items()}

_CHUNK_LABELS = {
    ChunkFormat.GZIP: "GZip",
    ChunkFormat.ZLIB: "ZLib",
    ChunkFormat.UNCOMPRESSED: "Uncompressed",
    ChunkFormat.LZ4: "LZ4",
}

_CHUNK_UVS = {
    ChunkFormat.GZIP: GZIP_FILE_TYPE_UV,
    ChunkFormat.ZLIB: ZLIB_FILE_TYPE_UV,
    ChunkFormat.UNCOMPRESSED: NBT_FILE_TYPE_UV,
    ChunkFormat.LZ4: LZ4_FILE_TYPE_UV,
}
