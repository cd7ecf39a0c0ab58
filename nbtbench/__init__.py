"""
nbtbench: load/save core of an NBT editor.

Features:

- Format sniffing with no caller-supplied format tag: region files by extension,
  gzip/zlib by magic number, then uncompressed big-endian, little-endian (with or
  without the 8-byte header) and finally SNBT text.
- Binary NBT codec in both byte orders, SNBT parser/printer, region (.mca/.mcr)
  container codec with per-chunk gzip/zlib/uncompressed/lz4 framing.
- ContainerFormat / ChunkFormat enums that re-encode a document and drive the
  editor's "change save format" rotation.
- Tab sessions with atomic saves and reloads that dispose of the old tree off
  the calling thread.

Malformed input is an expected condition: every decoder fails with a subclass of
nbtbench.errors.NbtBenchError rather than an arbitrary exception.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "compression",
    "tags",
    "binary",
    "snbt",
    "region",
    "formats",
    "sniffer",
    "filepath",
    "tab",
    "cli",
]

# Programmatic entry points: nbtbench.sniffer.detect / detect_file for loading,
# nbtbench.formats.ContainerFormat.encode for saving, nbtbench.tab.Tab for sessions.
