from __future__ import annotations

import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from nbtbench.formats import ChunkFormat, ContainerFormat
from nbtbench.region import Chunk, Region
from nbtbench.sniffer import detect_file
from nbtbench.tags import TagByte, TagCompound, TagInt, TagList, TagString


DOC = TagCompound(
    {
        "Data": TagCompound({"LevelName": TagString("Fixture"), "SpawnY": TagInt(64)}),
        "Enabled": TagList([TagByte(1), TagByte(0)]),
    }
)


def _build_fixture_tree(root: Path):
    (root / "level.dat").write_bytes(ContainerFormat.GZIP.encode(DOC))
    (root / "structure.mcstructure").write_bytes(ContainerFormat.LE.encode(DOC))
    (root / "thing.snbt").write_text("{a:1b}", encoding="utf-8")
    region = Region(
        [
            Chunk(0, 0, TagCompound({"xPos": TagInt(0)}), ChunkFormat.ZLIB, timestamp=1700000000),
            Chunk(1, 0, TagCompound({"xPos": TagInt(1)}), ChunkFormat.LZ4),
        ]
    )
    (root / "r.0.0.mca").write_bytes(ContainerFormat.REGION.encode(region))
    (root / "junk.bin").write_bytes(b"\x00\x01\x02 not nbt \xff")


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "nbtbench.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)
        _build_fixture_tree(self.root)

    def test_info_reports_detected_formats(self):
        expected = {
            "level.dat": "GZip",
            "structure.mcstructure": "Little Endian NBT",
            "thing.snbt": "SNBT",
            "r.0.0.mca": "MCA",
        }
        for name, label in expected.items():
            proc = self.run_cli(["info", str(self.root / name)])
            self.assertIn(f"format:\t{label}\n", proc.stdout)
        self.assertIn("chunks:\t2", self.run_cli(["info", str(self.root / "r.0.0.mca")]).stdout)

    def test_cat_prints_snbt(self):
        proc = self.run_cli(["cat", str(self.root / "thing.snbt")])
        self.assertEqual(proc.stdout.strip(), "{a:1b}")
        proc = self.run_cli(["cat", str(self.root / "r.0.0.mca")])
        self.assertIn("[0, 0]\t{xPos:0}", proc.stdout)
        self.assertIn("[1, 0]\t{xPos:1}", proc.stdout)

    def test_convert_in_place(self):
        target = self.root / "level.dat"
        proc = self.run_cli(["convert", str(target), "--to", "le-header"])
        self.assertIn("level.dat: GZip -> Little Endian NBT (With Header)", proc.stdout)
        self.assertEqual(detect_file(target), (DOC, ContainerFormat.LE_HEADER))

    def test_convert_to_new_file(self):
        src = self.root / "structure.mcstructure"
        out = self.root / "structure.snbt"
        self.run_cli(["convert", str(src), "--to", "snbt", "-o", str(out)])
        self.assertEqual(detect_file(out), (DOC, ContainerFormat.SNBT))
        self.assertEqual(detect_file(src), (DOC, ContainerFormat.LE))

    def test_convert_region_refused(self):
        target = self.root / "r.0.0.mca"
        before = target.read_bytes()
        proc = self.run_cli(["convert", str(target), "--to", "nbt"], expect=2)
        self.assertIn("Error:", proc.stderr)
        self.assertEqual(target.read_bytes(), before)

    def test_convert_to_nameless_output(self):
        src = self.root / "level.dat"
        before = sorted(os.listdir(self.root))
        proc = self.run_cli(["convert", str(src), "--to", "nbt", "-o", str(self.root / "..")], expect=2)
        self.assertIn("has no name", proc.stderr)
        self.assertEqual(sorted(os.listdir(self.root)), before)

    def test_chunks_listing(self):
        proc = self.run_cli(["chunks", str(self.root / "r.0.0.mca")])
        lines = proc.stdout.strip().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith("0\t0\tZLib\t2023-11-14"))
        self.assertEqual(lines[1], "1\t0\tLZ4\t-")
        self.run_cli(["chunks", str(self.root / "level.dat")], expect=2)

    def test_undetectable_file(self):
        proc = self.run_cli(["info", str(self.root / "junk.bin")], expect=2)
        self.assertIn("Failed to find file type for file junk.bin", proc.stderr)
        self.assertIn("--verbose", proc.stderr)

    def test_verbose_logs_each_attempt(self):
        proc = self.run_cli(["-v", "info", str(self.root / "junk.bin")], expect=2)
        self.assertIn("Tried to parse junk.bin as uncompressed NBT", proc.stderr)
        self.assertIn("Tried to parse junk.bin as SNBT", proc.stderr)

    def test_missing_file(self):
        proc = self.run_cli(["info", str(self.root / "missing.nbt")], expect=2)
        self.assertIn("Error:", proc.stderr)


if __name__ == "__main__":
    unittest.main()
