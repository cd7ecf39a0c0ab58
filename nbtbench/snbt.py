"""
Stringified NBT (SNBT).

    {display:{Name:"Excalibur",Lore:["a","b"]},Count:1b,Pos:[I;1,64,-3]}

Numbers carry a type suffix (b, s, L, f, d); an unsuffixed integer is an Int
and an unsuffixed decimal is a Double. ``true``/``false`` read as bytes.
Quoted strings take backslash escapes, including ``u`` plus four hex digits.
Anything else unquoted is a string.
"""

from __future__ import annotations

import math
import re
from typing import List

from .constants import MAX_DEPTH
from .errors import StructuralParseError
from .tags import (
    TagByte,
    TagShort,
    TagInt,
    TagLong,
    TagFloat,
    TagDouble,
    TagByteArray,
    TagIntArray,
    TagLongArray,
    TagString,
    TagList,
    TagCompound,
)


_DOUBLE_NO_SUFFIX = re.compile(r"[-+]?([0-9]+[.]|[0-9]*[.][0-9]+)(e[-+]?[0-9]+)?", re.IGNORECASE)
_DOUBLE = re.compile(r"[-+]?([0-9]+[.]?|[0-9]*[.][0-9]+)(e[-+]?[0-9]+)?d", re.IGNORECASE)
_FLOAT = re.compile(r"[-+]?([0-9]+[.]?|[0-9]*[.][0-9]+)(e[-+]?[0-9]+)?f", re.IGNORECASE)
_NON_FINITE = re.compile(r"([-+]?Infinity|NaN)([fd])", re.IGNORECASE)
_BYTE = re.compile(r"[-+]?(0|[1-9][0-9]*)b", re.IGNORECASE)
_SHORT = re.compile(r"[-+]?(0|[1-9][0-9]*)s", re.IGNORECASE)
_LONG = re.compile(r"[-+]?(0|[1-9][0-9]*)l", re.IGNORECASE)
_INT = re.compile(r"[-+]?(0|[1-9][0-9]*)")

_UNQUOTED = re.compile(r"[0-9A-Za-z_.+\-]+")

_HEX4 = re.compile(r"[0-9A-Fa-f]{4}")
_SURROGATE = re.compile("[\ud800-\udfff]")

_ESCAPES = {"\\": "\\", "'": "'", '"': '"', "n": "\n", "t": "\t", "r": "\r"}
_ARRAY_TYPES = {"B": (TagByteArray, TagByte), "I": (TagIntArray, TagInt), "L": (TagLongArray, TagLong)}


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def fail(self, message: str, pos=None) -> StructuralParseError:
        pos = self.pos if pos is None else pos
        snippet = self.text[max(0, pos - 10) : pos]
        return StructuralParseError(f"{message} near {snippet!r}<--[HERE]", offset=pos, context="snbt")

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, ch: str) -> None:
        self.skip_ws()
        if self.peek() != ch:
            found = repr(self.peek()) if self.peek() else "end of input"
            raise self.fail(f"expected {ch!r}, found {found}")
        self.pos += 1

    def unquoted(self) -> str:
        m = _UNQUOTED.match(self.text, self.pos)
        if not m:
            return ""
        self.pos = m.end()
        return m.group(0)

    def quoted(self) -> str:
        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1
        out: List[str] = []
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            self.pos += 1
            if ch == quote:
                return "".join(out)
            if ch == "\\":
                esc = self.peek()
                if esc == "u":
                    digits = self.text[self.pos + 1 : self.pos + 5]
                    if not _HEX4.fullmatch(digits):
                        raise self.fail("invalid \\u escape", self.pos - 1)
                    out.append(chr(int(digits, 16)))
                    self.pos += 5
                    continue
                if esc not in _ESCAPES:
                    raise self.fail(f"invalid escape sequence \\{esc}", self.pos - 1)
                out.append(_ESCAPES[esc])
                self.pos += 1
            else:
                out.append(ch)
        raise self.fail("unterminated quoted string", start)

    def key(self) -> str:
        self.skip_ws()
        if self.peek() in ("'", '"'):
            return self.quoted()
        start = self.pos
        k = self.unquoted()
        if not k:
            raise self.fail("expected compound key", start)
        return k

    def value(self, depth: int):
        self.skip_ws()
        ch = self.peek()
        if ch == "{":
            return self.compound(depth)
        if ch == "[":
            if self.text[self.pos + 1 : self.pos + 2] in _ARRAY_TYPES and self.text[self.pos + 2 : self.pos + 3] == ";":
                return self.array()
            return self.list(depth)
        if ch in ("'", '"'):
            return TagString(self.quoted())
        start = self.pos
        token = self.unquoted()
        if not token:
            raise self.fail("expected value" if ch else "unexpected end of input")
        return self.literal(token, start)

    def literal(self, token: str, start: int):
        try:
            if _FLOAT.fullmatch(token):
                return TagFloat(float(token[:-1]))
            if _BYTE.fullmatch(token):
                return TagByte(int(token[:-1]))
            if _LONG.fullmatch(token):
                return TagLong(int(token[:-1]))
            if _SHORT.fullmatch(token):
                return TagShort(int(token[:-1]))
            if _INT.fullmatch(token):
                return TagInt(int(token))
            if _DOUBLE.fullmatch(token):
                return TagDouble(float(token[:-1]))
            if _DOUBLE_NO_SUFFIX.fullmatch(token):
                return TagDouble(float(token))
            m = _NON_FINITE.fullmatch(token)
            if m:
                cls = TagFloat if m.group(2).lower() == "f" else TagDouble
                return cls(float(m.group(1)))
        except ValueError as e:
            raise self.fail(str(e), start) from e
        lowered = token.lower()
        if lowered == "true":
            return TagByte(1)
        if lowered == "false":
            return TagByte(0)
        return TagString(token)

    def compound(self, depth: int) -> TagCompound:
        if depth >= MAX_DEPTH:
            raise self.fail(f"nesting deeper than {MAX_DEPTH}")
        self.expect("{")
        out = TagCompound()
        self.skip_ws()
        if self.peek() == "}":
            self.pos += 1
            return out
        while True:
            k = self.key()
            self.expect(":")
            out[k] = self.value(depth + 1)
            self.skip_ws()
            if self.peek() == ",":
                self.pos += 1
                continue
            self.expect("}")
            return out

    def list(self, depth: int) -> TagList:
        if depth >= MAX_DEPTH:
            raise self.fail(f"nesting deeper than {MAX_DEPTH}")
        self.expect("[")
        out = TagList()
        self.skip_ws()
        if self.peek() == "]":
            self.pos += 1
            return out
        while True:
            self.skip_ws()
            start = self.pos
            item = self.value(depth + 1)
            try:
                out.append(item)
            except ValueError as e:
                raise self.fail(f"mixed types in list: {e}", start) from e
            self.skip_ws()
            if self.peek() == ",":
                self.pos += 1
                continue
            self.expect("]")
            return out

    def array(self):
        self.expect("[")
        array_cls, item_cls = _ARRAY_TYPES[self.text[self.pos]]
        self.pos += 2
        values: List[int] = []
        self.skip_ws()
        if self.peek() == "]":
            self.pos += 1
            return array_cls(values)
        while True:
            self.skip_ws()
            start = self.pos
            token = self.unquoted()
            item = self.literal(token, start) if token else None
            if type(item) is not item_cls:
                raise self.fail(f"expected {item_cls.__name__} in {array_cls.__name__}", start)
            values.append(item.value)
            self.skip_ws()
            if self.peek() == ",":
                self.pos += 1
                continue
            self.expect("]")
            return array_cls(values)


def parse(text: str):
    """Parse SNBT text into a tag. The whole input must be consumed."""
    p = _Parser(text)
    try:
        tag = p.value(0)
    except RecursionError as e:
        raise p.fail("nesting too deep for this interpreter") from e
    p.skip_ws()
    if p.pos != len(text):
        raise p.fail("trailing data after value")
    return tag


def _quote(s: str) -> str:
    escaped = s.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\t", "\\t").replace("\r", "\\r")
    # unpaired surrogates have no UTF-8 form
    escaped = _SURROGATE.sub(lambda m: "\\u%04x" % ord(m.group(0)), escaped)
    return f'"{escaped}"'


def _key(s: str) -> str:
    return s if _UNQUOTED.fullmatch(s) else _quote(s)


def _number(v: float) -> str:
    if math.isnan(v):
        return "NaN"
    if math.isinf(v):
        return "Infinity" if v > 0 else "-Infinity"
    return repr(v)


def _write(tag, out: List[str]) -> None:
    t = type(tag)
    if t is TagCompound:
        out.append("{")
        for i, (k, child) in enumerate(tag.items()):
            if i:
                out.append(",")
            out.append(_key(k))
            out.append(":")
            _write(child, out)
        out.append("}")
    elif t is TagList:
        out.append("[")
        for i, item in enumerate(tag):
            if i:
                out.append(",")
            _write(item, out)
        out.append("]")
    elif t is TagString:
        out.append(_quote(tag.value))
    elif t is TagByte:
        out.append(f"{tag.value}b")
    elif t is TagShort:
        out.append(f"{tag.value}s")
    elif t is TagInt:
        out.append(str(tag.value))
    elif t is TagLong:
        out.append(f"{tag.value}L")
    elif t is TagFloat:
        out.append(_number(tag.value) + "f")
    elif t is TagDouble:
        out.append(_number(tag.value) + "d")
    elif t is TagByteArray:
        out.append("[B;" + ",".join(f"{v}b" for v in tag.value) + "]")
    elif t is TagIntArray:
        out.append("[I;" + ",".join(str(v) for v in tag.value) + "]")
    elif t is TagLongArray:
        out.append("[L;" + ",".join(f"{v}L" for v in tag.value) + "]")
    else:
        raise TypeError(f"not an NBT tag: {tag!r}")


def stringify(tag) -> str:
    out: List[str] = []
    _write(tag, out)
    return "".join(out)
