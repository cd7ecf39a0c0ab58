from __future__ import annotations

import gzip
import struct
import unittest
import zlib

from nbtbench.binary import decode_be, decode_le, encode_be
from nbtbench.constants import MAX_DEPTH, SAVE_EXTENSIONS
from nbtbench.errors import DecompressionError, DetectionError, FormatMismatchError, StructuralParseError
from nbtbench.formats import FILE_TYPE_FILTERS, ChunkFormat, ContainerFormat
from nbtbench.region import Chunk, Region
from nbtbench.snbt import parse, stringify
from nbtbench.sniffer import detect
from nbtbench.tags import TagByte, TagCompound, TagInt, TagList, TagString


DOC = TagCompound(
    {
        "Data": TagCompound({"LevelName": TagString("World"), "version": TagInt(19133)}),
        "flags": TagList([TagByte(0), TagByte(1)]),
    }
)


class ContainerFormatTests(unittest.TestCase):
    def test_cycle_visits_every_single_document_format(self):
        seen = []
        fmt = ContainerFormat.NBT
        for _ in range(6):
            seen.append(fmt)
            fmt = fmt.cycle()
        self.assertIs(fmt, ContainerFormat.NBT)
        self.assertEqual(
            seen,
            [
                ContainerFormat.NBT,
                ContainerFormat.GZIP,
                ContainerFormat.ZLIB,
                ContainerFormat.LE,
                ContainerFormat.LE_HEADER,
                ContainerFormat.SNBT,
            ],
        )

    def test_rev_cycle_inverts_cycle(self):
        for fmt in ContainerFormat:
            self.assertIs(fmt.cycle().rev_cycle(), fmt)
            self.assertIs(fmt.rev_cycle().cycle(), fmt)

    def test_region_is_a_fixed_point(self):
        self.assertIs(ContainerFormat.REGION.cycle(), ContainerFormat.REGION)
        self.assertIs(ContainerFormat.REGION.rev_cycle(), ContainerFormat.REGION)

    def test_labels_and_icons(self):
        self.assertEqual(ContainerFormat.NBT.label, "Uncompressed")
        self.assertEqual(ContainerFormat.LE_HEADER.label, "Little Endian NBT (With Header)")
        self.assertEqual(str(ContainerFormat.REGION), "MCA")
        for fmt in ContainerFormat:
            self.assertEqual(len(fmt.uv), 2)
            self.assertLess(fmt.dialog_filter_index, len(FILE_TYPE_FILTERS))
        self.assertIn("mca", FILE_TYPE_FILTERS[ContainerFormat.REGION.dialog_filter_index][1])
        dialog_extensions = {ext for _, exts in FILE_TYPE_FILTERS for ext in exts}
        self.assertEqual(dialog_extensions, set(SAVE_EXTENSIONS))

    def test_encode_each_format(self):
        self.assertEqual(decode_be(ContainerFormat.NBT.encode(DOC)), DOC)

        packed = ContainerFormat.GZIP.encode(DOC)
        self.assertEqual(packed[:2], b"\x1f\x8b")
        self.assertEqual(decode_be(gzip.decompress(packed)), DOC)

        packed = ContainerFormat.ZLIB.encode(DOC)
        self.assertIn(packed[:2], (b"\x78\x01", b"\x78\x9c", b"\x78\xda"))
        self.assertEqual(decode_be(zlib.decompress(packed)), DOC)

        self.assertEqual(parse(ContainerFormat.SNBT.encode(DOC).decode("utf-8")), DOC)
        self.assertEqual(decode_le(ContainerFormat.LE.encode(DOC)), (DOC, False))
        self.assertEqual(decode_le(ContainerFormat.LE_HEADER.encode(DOC)), (DOC, True))

    def test_encode_is_deterministic(self):
        for fmt in ContainerFormat:
            if fmt is ContainerFormat.REGION:
                continue
            self.assertEqual(fmt.encode(DOC), fmt.encode(DOC), fmt)

    def test_region_mismatch(self):
        region = Region([Chunk(0, 0, DOC)])
        with self.assertRaises(FormatMismatchError):
            ContainerFormat.REGION.encode(DOC)
        for fmt in ContainerFormat:
            if fmt is not ContainerFormat.REGION:
                with self.assertRaises(FormatMismatchError):
                    fmt.encode(region)
        self.assertGreater(len(ContainerFormat.REGION.encode(region)), 8192)


def _nested(levels: int) -> TagCompound:
    doc = TagCompound({"leaf": TagList([TagInt(1)])})
    for _ in range(levels - 2):
        doc = TagCompound({"n": doc})
    return doc


def _redetect(fmt: ContainerFormat, doc):
    if fmt is ContainerFormat.REGION:
        root, found = detect("r.0.0.mca", fmt.encode(Region([Chunk(0, 0, doc)])))
        return root.get(0, 0).root, found
    return detect("doc.dat", fmt.encode(doc))


class RoundTripTests(unittest.TestCase):
    def test_lone_surrogate_survives_every_format(self):
        # Java modified UTF-8 may carry an unpaired surrogate
        doc = decode_be(b"\x0a\x00\x00\x08\x00\x01a\x00\x03\xed\xa0\x80\x00")
        self.assertEqual(doc["a"], TagString("\ud800"))
        doc["\udc00key"] = TagString("x\udfffy")
        for fmt in ContainerFormat:
            with self.subTest(fmt=fmt):
                self.assertEqual(_redetect(fmt, doc), (doc, fmt))

    def test_snbt_unicode_escape(self):
        self.assertEqual(parse('{a:"\\u00e9\\ud800"}'), TagCompound({"a": TagString("é\ud800")}))
        with self.assertRaises(StructuralParseError):
            parse('{a:"\\u12"}')

    def test_deepest_allowed_document_survives_every_format(self):
        doc = _nested(MAX_DEPTH)
        for fmt in ContainerFormat:
            with self.subTest(fmt=fmt):
                self.assertEqual(_redetect(fmt, doc), (doc, fmt))

    def test_one_level_too_deep_is_rejected_by_both_codecs(self):
        doc = _nested(MAX_DEPTH + 1)
        with self.assertRaises(StructuralParseError):
            decode_be(encode_be(doc))
        with self.assertRaises(StructuralParseError):
            parse(stringify(doc))
        with self.assertRaises(DetectionError):
            detect("doc.snbt", ContainerFormat.SNBT.encode(doc))


class ChunkFormatTests(unittest.TestCase):
    def test_type_ids(self):
        self.assertEqual(
            [f.type_id for f in ChunkFormat],
            [1, 2, 3, 4],
        )
        self.assertIs(ChunkFormat.default(), ChunkFormat.ZLIB)
        self.assertIs(ChunkFormat.from_type_id(4), ChunkFormat.LZ4)
        with self.assertRaises(StructuralParseError) as cm:
            ChunkFormat.from_type_id(9, context="chunk (1, 2)")
        self.assertEqual(cm.exception.context, "chunk (1, 2)")

    def test_cycle_closure(self):
        fmt = ChunkFormat.GZIP
        order = []
        for _ in range(4):
            order.append(fmt)
            fmt = fmt.cycle()
        self.assertIs(fmt, ChunkFormat.GZIP)
        self.assertEqual(order, [ChunkFormat.GZIP, ChunkFormat.ZLIB, ChunkFormat.UNCOMPRESSED, ChunkFormat.LZ4])
        for f in ChunkFormat:
            self.assertIs(f.rev_cycle().cycle(), f)

    def test_encode_decode(self):
        raw_len = len(encode_be(DOC))
        for fmt in ChunkFormat:
            payload = fmt.encode(DOC)
            size = raw_len if fmt is ChunkFormat.LZ4 else None
            self.assertEqual(fmt.decode(payload, size), DOC, fmt)
        self.assertEqual(ChunkFormat.UNCOMPRESSED.encode(DOC), encode_be(DOC))

    def test_lz4_payload_is_a_bare_block(self):
        payload = ChunkFormat.LZ4.encode(DOC)
        # no frame magic and no stored size
        self.assertNotEqual(payload[:4], struct.pack("<I", 0x184D2204))
        with self.assertRaises(DecompressionError):
            ChunkFormat.LZ4.decode(payload)

    def test_decode_garbage(self):
        with self.assertRaises(DecompressionError):
            ChunkFormat.ZLIB.decode(b"not zlib at all")
        with self.assertRaises(StructuralParseError):
            ChunkFormat.UNCOMPRESSED.decode(b"\x0a\x00")


if __name__ == "__main__":
    unittest.main()
