from __future__ import annotations

import gzip
import zlib
from typing import Optional

import lz4.block

from .constants import CODEC_NONE, CODEC_GZIP, CODEC_ZLIB, CODEC_LZ4, COMPRESSION_LEVEL, LZ4_MAX_RATIO, LZ4_MAX_BLOCK_SIZE
from .errors import CompressionError, DecompressionError


_CODEC_NAMES = {
    CODEC_GZIP: "gzip",
    CODEC_ZLIB: "zlib",
    CODEC_NONE: "uncompressed",
    CODEC_LZ4: "lz4",
}


def gzip_compress(data: bytes) -> bytes:
    # mtime=0 keeps the output a pure function of the input
    return gzip.compress(data, compresslevel=COMPRESSION_LEVEL, mtime=0)


def gzip_decompress(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise DecompressionError("gzip", str(e) or type(e).__name__) from e


def zlib_compress(data: bytes) -> bytes:
    return zlib.compress(data, COMPRESSION_LEVEL)


def zlib_decompress(data: bytes) -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error as e:
        raise DecompressionError("zlib", str(e)) from e


def lz4_compress(data: bytes) -> bytes:
    """Compress into a bare LZ4 block; the raw length is not stored."""
    try:
        return lz4.block.compress(data, mode="high_compression", compression=12, store_size=False)
    except lz4.block.LZ4BlockError as e:
        raise CompressionError(f"lz4 compression failed: {e}") from e


def lz4_decompress(data: bytes, uncompressed_size: int) -> bytes:
    if uncompressed_size < 0:
        raise DecompressionError("lz4", f"negative uncompressed size {uncompressed_size}")
    # an LZ4 block cannot expand by more than LZ4_MAX_RATIO
    limit = min(len(data) * LZ4_MAX_RATIO + 16, LZ4_MAX_BLOCK_SIZE)
    if uncompressed_size > limit:
        raise DecompressionError("lz4", f"uncompressed size {uncompressed_size} is impossible for a {len(data)} byte block")
    if uncompressed_size == 0:
        return b""
    try:
        out = lz4.block.decompress(data, uncompressed_size=uncompressed_size)
    except (lz4.block.LZ4BlockError, ValueError, OverflowError, MemoryError) as e:
        raise DecompressionError("lz4", str(e) or type(e).__name__) from e
    if len(out) != uncompressed_size:
        raise DecompressionError("lz4", f"expected {uncompressed_size} bytes, got {len(out)}")
    return out


class Codec:
    def __init__(self, codec_id: int):
        if codec_id not in _CODEC_NAMES:
            raise ValueError(f"unsupported codec id: {codec_id}")
        self.codec_id = codec_id

    @property
    def name(self) -> str:
        return _CODEC_NAMES[self.codec_id]

    def compress(self, data: bytes) -> bytes:
        if self.codec_id == CODEC_NONE:
            return data
        if self.codec_id == CODEC_GZIP:
            return gzip_compress(data)
        if self.codec_id == CODEC_ZLIB:
            return zlib_compress(data)
        return lz4_compress(data)

    def decompress(self, data: bytes, uncompressed_size: Optional[int] = None) -> bytes:
        if self.codec_id == CODEC_NONE:
            return data
        if self.codec_id == CODEC_GZIP:
            return gzip_decompress(data)
        if self.codec_id == CODEC_ZLIB:
            return zlib_decompress(data)
        # LZ4 blocks carry no header; the caller must know the raw length
        if uncompressed_size is None:
            raise DecompressionError("lz4", "uncompressed size is required for a bare block")
        return lz4_decompress(data, uncompressed_size)
