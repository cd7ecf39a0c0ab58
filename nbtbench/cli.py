from __future__ import annotations

import argparse
import datetime as _dt
import logging
import sys
from pathlib import Path
from typing import List, Optional

from nbtbench.errors import NbtBenchError, DetectionError, PathHasNoNameError
from nbtbench.formats import ContainerFormat
from nbtbench.region import Region
from nbtbench.snbt import stringify
from nbtbench.tab import Tab, shutdown_disposal
from nbtbench.tags import TagCompound


_CONVERT_TARGETS = {
    "nbt": ContainerFormat.NBT,
    "gzip": ContainerFormat.GZIP,
    "zlib": ContainerFormat.ZLIB,
    "snbt": ContainerFormat.SNBT,
    "le": ContainerFormat.LE,
    "le-header": ContainerFormat.LE_HEADER,
}


def _root_kind(root) -> str:
    if isinstance(root, Region):
        return "Region"
    if isinstance(root, TagCompound):
        return "Compound"
    return "List"


def cmd_info(path: str) -> None:
    """Print the detected format and root shape of a file.

    Args:
        path: File to inspect.
    """
    tab = Tab.open(path)
    print(f"format:\t{tab.format.label}")
    print(f"root:\t{_root_kind(tab.root)}")
    if isinstance(tab.root, Region):
        print(f"chunks:\t{len(tab.root)}")
    else:
        print(f"entries:\t{len(tab.root)}")


def cmd_cat(path: str) -> None:
    """Print a document as SNBT; region chunks are printed one per line."""
    tab = Tab.open(path)
    if isinstance(tab.root, Region):
        for chunk in tab.root:
            print(f"[{chunk.x}, {chunk.z}]\t{stringify(chunk.root)}")
    else:
        print(stringify(tab.root))


def cmd_convert(path: str, target: str, output: Optional[str] = None) -> Path:
    """Re-encode a document in another container format.

    Args:
        path: Source file (any detectable format).
        target: Key of _CONVERT_TARGETS.
        output: Destination path; defaults to overwriting ``path``.

    Returns:
        The path written.
    """
    tab = Tab.open(path)
    if tab.format is ContainerFormat.REGION:
        raise NbtBenchError("region files cannot be converted to a single-document format")
    before = tab.format
    tab.format = _CONVERT_TARGETS[target]
    written = tab.save(output)
    print(f"{tab.path.name}: {before.label} -> {tab.format.label}")
    return written


def cmd_chunks(path: str) -> None:
    tab = Tab.open(path)
    if not isinstance(tab.root, Region):
        raise NbtBenchError(f"{tab.path.name} is not a region file (detected {tab.format.label})")
    for chunk in tab.root:
        when = _dt.datetime.fromtimestamp(chunk.timestamp, tz=_dt.timezone.utc).strftime("%Y-%m-%d %H:%M:%S") if chunk.timestamp else "-"
        print(f"{chunk.x}\t{chunk.z}\t{chunk.compression.label}\t{when}")


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="nbtbench",
        description="Inspect and convert NBT, SNBT and region files",
        epilog="The format of every input is detected from its contents (region files by extension).",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Log every format that was tried")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_info = sub.add_parser("info", help="Show detected format and root type")
    ap_info.add_argument("file", help="Input file")

    ap_cat = sub.add_parser("cat", help="Print the document as SNBT")
    ap_cat.add_argument("file", help="Input file")

    ap_convert = sub.add_parser("convert", help="Re-encode a document in another format")
    ap_convert.add_argument("file", help="Input file")
    ap_convert.add_argument("--to", required=True, choices=sorted(_CONVERT_TARGETS), help="Target format")
    ap_convert.add_argument("--output", "-o", help="Output path (default: overwrite the input)")

    ap_chunks = sub.add_parser("chunks", help="List the chunks of a region file")
    ap_chunks.add_argument("file", help="Region file (.mca/.mcr)")

    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    try:
        if args.cmd == "info":
            cmd_info(args.file)
        elif args.cmd == "cat":
            cmd_cat(args.file)
        elif args.cmd == "convert":
            cmd_convert(args.file, args.to, output=args.output)
        elif args.cmd == "chunks":
            cmd_chunks(args.file)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except DetectionError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Hint: run with --verbose to see why each format was rejected.", file=sys.stderr)
        sys.exit(2)
    except PathHasNoNameError as e:
        print(f"Error: {e}; nothing was written.", file=sys.stderr)
        sys.exit(2)
    except (NbtBenchError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    finally:
        shutdown_disposal()


if __name__ == "__main__":
    main()
