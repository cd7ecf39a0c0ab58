from __future__ import annotations

from typing import Optional


class NbtBenchError(Exception):
    """Base class for nbtbench-specific errors."""


# Detection
class DetectionError(NbtBenchError):
    def __init__(self, file_name: str):
        super().__init__(f"Failed to find file type for file {file_name}")
        self.file_name = file_name


# Structure/codec
class StructuralParseError(NbtBenchError, ValueError):
    """A chosen variant's grammar was violated.

    ``offset`` is the byte (or character, for SNBT) position the reader had
    reached; ``context`` names the tag or chunk being read.
    """

    def __init__(self, message: str, offset: Optional[int] = None, context: Optional[str] = None):
        detail = message
        if context:
            detail = f"{detail} (in {context})"
        if offset is not None:
            detail = f"{detail} at offset {offset}"
        super().__init__(detail)
        self.offset = offset
        self.context = context


class DecompressionError(NbtBenchError, ValueError):
    def __init__(self, codec: str, message: str):
        super().__init__(f"Failed to decode {codec} compressed data: {message}")
        self.codec = codec
        self.detail = message


class CompressionError(NbtBenchError):
    pass


class RootShapeError(NbtBenchError, ValueError):
    pass


class FormatMismatchError(NbtBenchError, TypeError):
    pass


class RegionTooLargeError(NbtBenchError):
    pass


# Paths
class PathHasNoNameError(NbtBenchError, ValueError):
    def __init__(self, path):
        super().__init__(f"Path {str(path)!r} has no name")
        self.path = path
