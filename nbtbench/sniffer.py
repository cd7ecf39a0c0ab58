from __future__ import annotations

import logging
import os
from pathlib import PurePath
from typing import Optional, Tuple, Union

from . import binary, snbt
from .compression import gzip_decompress, zlib_decompress
from .constants import GZIP_MAGIC, ZLIB_MAGICS, REGION_EXTENSIONS
from .errors import DetectionError, NbtBenchError, StructuralParseError
from .formats import ContainerFormat
from .region import decode_region
from .tags import is_valid_root


logger = logging.getLogger(__name__)

PathHint = Union[str, "os.PathLike[str]", None]


def _extension(path_hint: PathHint) -> Optional[str]:
    """Lower-cased extension of a path, or the hint itself if it is a bare extension."""
    if path_hint is None:
        return None
    p = PurePath(os.fspath(path_hint))
    if p.suffix:
        return p.suffix[1:].lower()
    # a bare ".mca" is an extension, a file named "mca" is not
    name = p.name
    if name.startswith(".") and name == str(path_hint):
        return name[1:].lower() or None
    return None


def _file_name(path_hint: PathHint) -> str:
    if path_hint is None:
        return "<buffer>"
    return PurePath(os.fspath(path_hint)).name or str(path_hint)


def _magic(data: bytes) -> Optional[int]:
    if len(data) < 2:
        return None
    return (data[0] << 8) | data[1]


def _decode_checked(data: bytes, what: str):
    """Decode an unambiguous (decompressed) big-endian body; failures are terminal."""
    root = binary.decode_be(data)
    if not is_valid_root(root):
        raise StructuralParseError(f"{what} NBT root is {type(root).__name__}, expected a Compound or List", context="root")
    return root


def _try_be(data: bytes):
    root = binary.decode_be(data)
    return (root, ContainerFormat.NBT) if is_valid_root(root) else None


def _try_le(data: bytes):
    root, has_header = binary.decode_le(data)
    if not is_valid_root(root):
        return None
    return root, ContainerFormat.LE_HEADER if has_header else ContainerFormat.LE


def _try_snbt(data: bytes):
    root = snbt.parse(data.decode("utf-8"))
    return (root, ContainerFormat.SNBT) if is_valid_root(root) else None


# Decoders without an unambiguous signature, tried in order; a failure moves on
_FALLBACK_DECODERS = (
    ("uncompressed NBT", _try_be),
    ("little-endian NBT", _try_le),
    ("SNBT", _try_snbt),
)


def detect(path_hint: PathHint, data: bytes) -> Tuple[object, ContainerFormat]:
    """Work out the container format of ``data`` and decode it.

    Args:
        path_hint: Source path or bare extension. Only the extension is used,
            and only to recognise region files.
        data: Complete file contents.

    Returns:
        ``(document, format)`` where document is a compound, a list, or a
        Region.

    Raises:
        StructuralParseError / DecompressionError: a region extension or a
            gzip/zlib magic number matched but the payload is invalid.
        DetectionError: no fallback decoder produced a compound or list root.
    """
    data = bytes(data)

    if _extension(path_hint) in REGION_EXTENSIONS:
        return decode_region(data), ContainerFormat.REGION

    magic = _magic(data)
    if magic == GZIP_MAGIC:
        return _decode_checked(gzip_decompress(data), "gzip"), ContainerFormat.GZIP
    if magic in ZLIB_MAGICS:
        return _decode_checked(zlib_decompress(data), "zlib"), ContainerFormat.ZLIB

    for name, attempt in _FALLBACK_DECODERS:
        try:
            result = attempt(data)
        except (NbtBenchError, UnicodeDecodeError) as e:
            logger.debug("Tried to parse %s as %s: %s", _file_name(path_hint), name, e)
            continue
        if result is None:
            logger.debug("Tried to parse %s as %s: root is not a Compound or List", _file_name(path_hint), name)
            continue
        return result

    raise DetectionError(_file_name(path_hint))


def detect_file(path) -> Tuple[object, ContainerFormat]:
    with open(path, "rb") as fh:
        data = fh.read()
    return detect(path, data)
