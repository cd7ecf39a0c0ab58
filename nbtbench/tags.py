"""
In-memory NBT document tree.

Each tag is a small object holding a ``value``. Equality is structural: two
tags are equal when they are the same tag type and their values are equal
(compounds ignore key order, floats compare by bit pattern so a NaN that
went through the codec still equals itself).

Only a compound or a list may be the root of a document; see
``is_valid_root``.
"""

from __future__ import annotations

import struct
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

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
)


def _check_int(value: int, bits: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what}: expected int, got {type(value).__name__}")
    lo = -(1 << (bits - 1))
    hi = (1 << (bits - 1)) - 1
    if not lo <= value <= hi:
        raise ValueError(f"{what}: {value} out of range [{lo}, {hi}]")
    return value


class _Tag:
    __slots__ = ("value",)
    tag_id: int = TAG_END

    def __init__(self, value):
        self.value = value

    def _key(self):
        return self.value

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._key() == other._key()

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, self.value)


class _IntTag(_Tag):
    __slots__ = ()
    bits = 0

    def __init__(self, value: int = 0):
        super().__init__(_check_int(value, self.bits, type(self).__name__))


class TagByte(_IntTag):
    __slots__ = ()
    tag_id = TAG_BYTE
    bits = 8


class TagShort(_IntTag):
    __slots__ = ()
    tag_id = TAG_SHORT
    bits = 16


class TagInt(_IntTag):
    __slots__ = ()
    tag_id = TAG_INT
    bits = 32


class TagLong(_IntTag):
    __slots__ = ()
    tag_id = TAG_LONG
    bits = 64


class TagFloat(_Tag):
    """Single-precision float; the stored value is rounded to binary32."""

    __slots__ = ()
    tag_id = TAG_FLOAT

    def __init__(self, value: float = 0.0):
        try:
            value = struct.unpack(">f", struct.pack(">f", float(value)))[0]
        except OverflowError as e:
            raise ValueError(f"TagFloat: {value!r} does not fit in binary32") from e
        super().__init__(value)

    def _key(self):
        return struct.pack(">f", self.value)


class TagDouble(_Tag):
    __slots__ = ()
    tag_id = TAG_DOUBLE

    def __init__(self, value: float = 0.0):
        super().__init__(float(value))

    def _key(self):
        return struct.pack(">d", self.value)


class TagString(_Tag):
    __slots__ = ()
    tag_id = TAG_STRING

    def __init__(self, value: str = ""):
        if not isinstance(value, str):
            raise ValueError(f"TagString: expected str, got {type(value).__name__}")
        super().__init__(value)


class _ArrayTag(_Tag):
    __slots__ = ()
    width = 0

    def __init__(self, value: Optional[Iterable[int]] = None):
        name = type(self).__name__
        super().__init__([_check_int(v, self.width, name) for v in (value or ())])

    def __len__(self):
        return len(self.value)

    def __iter__(self):
        return iter(self.value)


class TagByteArray(_ArrayTag):
    __slots__ = ()
    tag_id = TAG_BYTE_ARRAY
    width = 8


class TagIntArray(_ArrayTag):
    __slots__ = ()
    tag_id = TAG_INT_ARRAY
    width = 32


class TagLongArray(_ArrayTag):
    __slots__ = ()
    tag_id = TAG_LONG_ARRAY
    width = 64


class TagList(_Tag):
    """Ordered sequence of tags that all share one tag type.

    ``element_id`` is the tag id of the elements; an empty list keeps whatever
    id it was given (``TAG_END`` by default) so it survives a binary round trip.
    """

    __slots__ = ("element_id",)
    tag_id = TAG_LIST

    def __init__(self, value: Optional[Iterable[_Tag]] = None, element_id: Optional[int] = None):
        items = list(value or ())
        if items:
            first = type(items[0]).tag_id
            if element_id is not None and element_id != first:
                raise ValueError(f"TagList: element id {element_id} does not match {type(items[0]).__name__}")
            element_id = first
            for item in items:
                if type(item).tag_id != element_id:
                    raise ValueError(f"TagList: mixed element types {type(items[0]).__name__} and {type(item).__name__}")
        super().__init__(items)
        self.element_id = TAG_END if element_id is None else element_id

    def _key(self):
        if not self.value:
            return ()
        return (self.element_id, self.value)

    def append(self, item: _Tag) -> None:
        if self.value and type(item).tag_id != self.element_id:
            raise ValueError(f"TagList: cannot append {type(item).__name__} to list of id {self.element_id}")
        self.element_id = type(item).tag_id
        self.value.append(item)

    def __len__(self):
        return len(self.value)

    def __iter__(self) -> Iterator[_Tag]:
        return iter(self.value)

    def __getitem__(self, idx):
        return self.value[idx]

    def __repr__(self):
        return "TagList(%r, element_id=%d)" % (self.value, self.element_id)


class TagCompound(_Tag):
    __slots__ = ()
    tag_id = TAG_COMPOUND

    def __init__(self, value: Optional[Dict[str, _Tag]] = None):
        super().__init__(dict(value or {}))

    def __len__(self):
        return len(self.value)

    def __iter__(self) -> Iterator[str]:
        return iter(self.value)

    def __contains__(self, key):
        return key in self.value

    def __getitem__(self, key: str) -> _Tag:
        return self.value[key]

    def __setitem__(self, key: str, tag: _Tag) -> None:
        if not isinstance(key, str):
            raise ValueError(f"TagCompound: keys must be str, got {type(key).__name__}")
        self.value[key] = tag

    def __delitem__(self, key: str) -> None:
        del self.value[key]

    def items(self) -> Iterable[Tuple[str, _Tag]]:
        return self.value.items()


TAG_CLASSES = {
    TAG_BYTE: TagByte,
    TAG_SHORT: TagShort,
    TAG_INT: TagInt,
    TAG_LONG: TagLong,
    TAG_FLOAT: TagFloat,
    TAG_DOUBLE: TagDouble,
    TAG_BYTE_ARRAY: TagByteArray,
    TAG_STRING: TagString,
    TAG_LIST: TagList,
    TAG_COMPOUND: TagCompound,
    TAG_INT_ARRAY: TagIntArray,
    TAG_LONG_ARRAY: TagLongArray,
}

_TAG_NAMES: List[str] = [
    "End",
    "Byte",
    "Short",
    "Int",
    "Long",
    "Float",
    "Double",
    "ByteArray",
    "String",
    "List",
    "Compound",
    "IntArray",
    "LongArray",
]


def tag_name(tag_id: int) -> str:
    if 0 <= tag_id < len(_TAG_NAMES):
        return _TAG_NAMES[tag_id]
    return f"Unknown({tag_id})"


def is_valid_root(doc) -> bool:
    """True when ``doc`` may be the top-level value of a document."""
    return isinstance(doc, (TagCompound, TagList))
