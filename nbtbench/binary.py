from __future__ import annotations

"""
Binary NBT codec.

Big-endian file layout (Java edition)
- u8 root tag id
- root name: u16 length || Java modified UTF-8 bytes (read and discarded)
- root payload

Little-endian file layout (Bedrock edition)
- optional header: u32 storage version || u32 body length
- the same grammar with little-endian numbers and plain UTF-8 strings

Payloads
- Byte/Short/Int/Long: signed 8/16/32/64-bit
- Float/Double: IEEE-754 binary32/binary64
- ByteArray/IntArray/LongArray: i32 count || elements
- String: u16 length || bytes
- List: u8 element id || i32 count || payloads
- Compound: (u8 id || name || payload)* || u8 End

Every malformed input surfaces as StructuralParseError with the offset the
reader had reached; decoders never leak struct.error or RecursionError.
"""

import struct
from typing import Tuple

from mutf8 import decode_modified_utf8, encode_modified_utf8

from .constants import (
    TAG_END,
    TAG_BYTE,
    TAG_SHORT,
    TAG_INT,
    TAG_LONG,
    TAG_FLOAT,
    TAG_DOUBLE,
    TAG_BYTE_ARRAY,
    TAG_STRING,
    TAG_LIST,
    TAG_COMPOUND,
    TAG_INT_ARRAY,
    TAG_LONG_ARRAY,
    MAX_DEPTH,
    LE_HEADER_SIZE,
    LE_HEADER_VERSION,
)
from .errors import StructuralParseError
from .tags import TAG_CLASSES, TagString, TagList, TagCompound, tag_name


_LE_HEADER_STRUCT = struct.Struct("<II")

# Scalar payload formats: tag id -> (struct code, size)
_SCALARS = {
    TAG_BYTE: ("b", 1),
    TAG_SHORT: ("h", 2),
    TAG_INT: ("i", 4),
    TAG_LONG: ("q", 8),
    TAG_FLOAT: ("f", 4),
    TAG_DOUBLE: ("d", 8),
}

_ARRAYS = {
    TAG_BYTE_ARRAY: ("b", 1),
    TAG_INT_ARRAY: ("i", 4),
    TAG_LONG_ARRAY: ("q", 8),
}


class _Reader:
    def __init__(self, data: bytes, little: bool, pos: int = 0):
        self.data = bytes(data)
        self.pos = pos
        self.little = little
        self.order = "<" if little else ">"

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def fail(self, message: str, context: str) -> StructuralParseError:
        return StructuralParseError(message, offset=self.pos, context=context)

    def take(self, n: int, context: str) -> bytes:
        if n < 0:
            raise self.fail(f"negative length {n}", context)
        if n > self.remaining:
            raise self.fail(f"truncated input: need {n} bytes, {self.remaining} left", context)
        out = self.data[self.pos : self.pos + n]
        self.pos += n
        return out

    def unpack(self, code: str, size: int, context: str):
        return struct.unpack(self.order + code, self.take(size, context))[0]

    def u8(self, context: str) -> int:
        return self.take(1, context)[0]

    def length(self, context: str) -> int:
        n = self.unpack("i", 4, context)
        if n < 0:
            self.pos -= 4
            raise self.fail(f"negative length {n}", context)
        return n

    def string(self, context: str) -> str:
        n = self.unpack("H", 2, context)
        start = self.pos
        raw = self.take(n, context)
        try:
            if self.little:
                return raw.decode("utf-8", "surrogatepass")
            value = decode_modified_utf8(raw)
            # supplementary characters are stored as surrogate pairs
            if any("\ud800" <= ch <= "\udfff" for ch in value):
                value = value.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")
            return value
        # mutf8's pure-Python decoder raises RuntimeError on a bad lead byte
        except (ValueError, RuntimeError) as e:
            raise StructuralParseError(f"invalid string bytes: {str(e) or type(e).__name__}", offset=start, context=context) from e


def read_payload(r: _Reader, tag_id: int, depth: int = 0, context: str = "root"):
    """Read one payload of type ``tag_id`` from ``r``."""
    if tag_id in _SCALARS:
        code, size = _SCALARS[tag_id]
        return TAG_CLASSES[tag_id](r.unpack(code, size, context))

    if tag_id in _ARRAYS:
        code, size = _ARRAYS[tag_id]
        n = r.length(context)
        raw = r.take(n * size, context)
        return TAG_CLASSES[tag_id](struct.unpack(f"{r.order}{n}{code}", raw))

    if tag_id == TAG_STRING:
        return TagString(r.string(context))

    if tag_id == TAG_LIST:
        if depth >= MAX_DEPTH:
            raise r.fail(f"nesting deeper than {MAX_DEPTH}", context)
        element_id = r.u8(context)
        n = r.length(context)
        if element_id not in TAG_CLASSES and not (element_id == TAG_END and n == 0):
            raise r.fail(f"invalid list element type {element_id}", context)
        # every element occupies at least one byte
        if n > r.remaining:
            raise r.fail(f"list of {n} elements exceeds {r.remaining} remaining bytes", context)
        inner = f"{context}[{tag_name(element_id)}]"
        items = []
        for _ in range(n):
            items.append(read_payload(r, element_id, depth + 1, inner))
        return TagList(items, element_id=element_id)

    if tag_id == TAG_COMPOUND:
        if depth >= MAX_DEPTH:
            raise r.fail(f"nesting deeper than {MAX_DEPTH}", context)
        out = TagCompound()
        while True:
            child_id = r.u8(context)
            if child_id == TAG_END:
                return out
            if child_id not in TAG_CLASSES:
                r.pos -= 1
                raise r.fail(f"unknown tag id {child_id}", context)
            key = r.string(context)
            out[key] = read_payload(r, child_id, depth + 1, f"{context}.{key}")

    raise r.fail(f"unknown tag id {tag_id}", context)


def _read_named_root(r: _Reader):
    root_id = r.u8("root")
    if root_id not in TAG_CLASSES:
        r.pos -= 1
        raise r.fail(f"invalid root tag type {tag_name(root_id)}", "root")
    r.string("root name")
    try:
        root = read_payload(r, root_id)
    except RecursionError as e:
        raise r.fail("nesting too deep for this interpreter", "root") from e
    if r.remaining:
        raise r.fail(f"{r.remaining} trailing bytes after root {tag_name(root_id)}", "root")
    return root


def decode_be(data: bytes):
    return _read_named_root(_Reader(data, little=False))


def _has_le_header(data: bytes) -> bool:
    if len(data) < LE_HEADER_SIZE:
        return False
    _version, body_len = _LE_HEADER_STRUCT.unpack_from(data, 0)
    return body_len == len(data) - LE_HEADER_SIZE


def decode_le(data: bytes) -> Tuple[object, bool]:
    """Decode little-endian NBT.

    Returns ``(root, has_header)``. The header is recognised when the second
    u32 equals the number of bytes following it; if the body behind such a
    header does not parse, the buffer is retried as headerless.
    """
    if _has_le_header(data):
        try:
            return _read_named_root(_Reader(data, little=True, pos=LE_HEADER_SIZE)), True
        except StructuralParseError:
            pass
    return _read_named_root(_Reader(data, little=True)), False


def write_payload(out: bytearray, tag, order: str = ">") -> None:
    """Append the payload of ``tag`` to ``out``."""
    tag_id = getattr(type(tag), "tag_id", None)
    if tag_id in _SCALARS:
        out += struct.pack(order + _SCALARS[tag_id][0], tag.value)
    elif tag_id in _ARRAYS:
        n = len(tag.value)
        out += struct.pack(f"{order}i{n}{_ARRAYS[tag_id][0]}", n, *tag.value)
    elif tag_id == TAG_STRING:
        _write_string(out, tag.value, order)
    elif tag_id == TAG_LIST:
        out += struct.pack(order + "Bi", tag.element_id, len(tag.value))
        for item in tag.value:
            write_payload(out, item, order)
    elif tag_id == TAG_COMPOUND:
        for key, child in tag.value.items():
            out.append(type(child).tag_id)
            _write_string(out, key, order)
            write_payload(out, child, order)
        out.append(TAG_END)
    else:
        raise TypeError(f"not an NBT tag: {tag!r}")


def _write_string(out: bytearray, value: str, order: str) -> None:
    raw = value.encode("utf-8", "surrogatepass") if order == "<" else encode_modified_utf8(value)
    if len(raw) > 0xFFFF:
        raise ValueError(f"string of {len(raw)} bytes exceeds the 65535 byte limit")
    out += struct.pack(order + "H", len(raw))
    out += raw


def _write_named_root(tag, order: str) -> bytearray:
    out = bytearray()
    out.append(type(tag).tag_id)
    _write_string(out, "", order)
    write_payload(out, tag, order)
    return out


def encode_be(tag) -> bytes:
    return bytes(_write_named_root(tag, ">"))


def encode_le(tag, with_header: bool) -> bytes:
    body = _write_named_root(tag, "<")
    if not with_header:
        return bytes(body)
    return _LE_HEADER_STRUCT.pack(LE_HEADER_VERSION, len(body)) + bytes(body)
