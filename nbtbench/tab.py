from __future__ import annotations

import atexit
import concurrent.futures as _fut
import logging
import os
import stat
import tempfile
import threading
import time
from pathlib import Path
from typing import Optional

from .constants import DEFAULT_FILE_NAME, DEFAULT_REGION_FILE_NAME, TAB_CLOSE_DOUBLE_CLICK_INTERVAL
from .errors import RootShapeError
from .filepath import FilePath
from .formats import ContainerFormat
from .region import Region
from .sniffer import detect_file
from .tags import TagCompound, is_valid_root


logger = logging.getLogger(__name__)


class History:
    """Minimal undo/redo history surface used by load and save.

    The editor's real history manager records actions; here only the
    saved/unsaved bookkeeping matters.
    """

    def __init__(self):
        self._actions = 0
        self._saved_at = 0

    def record(self) -> None:
        self._actions += 1

    def on_save(self) -> None:
        self._saved_at = self._actions

    @property
    def has_unsaved_changes(self) -> bool:
        return self._actions != self._saved_at


# -------- Deferred disposal --------

_disposal_lock = threading.Lock()
_disposal_pool: Optional[_fut.ThreadPoolExecutor] = None


def _drop(obj) -> None:
    # the last reference goes away with the work item, on the worker thread
    pass


def dispose_later(obj) -> _fut.Future:
    """Hand ``obj`` to a background worker that releases it.

    Large trees are slow to free; the caller must not keep its own reference.
    """
    global _disposal_pool
    with _disposal_lock:
        if _disposal_pool is None:
            _disposal_pool = _fut.ThreadPoolExecutor(max_workers=1, thread_name_prefix="nbtbench-dispose")
        return _disposal_pool.submit(_drop, obj)


def shutdown_disposal() -> None:
    """Wait for queued disposals to finish and stop the worker."""
    global _disposal_pool
    with _disposal_lock:
        pool, _disposal_pool = _disposal_pool, None
    if pool is not None:
        pool.shutdown(wait=True)


atexit.register(shutdown_disposal)


def _check_root(root, fmt: ContainerFormat) -> None:
    if fmt is ContainerFormat.REGION:
        if not isinstance(root, Region):
            raise RootShapeError(f"{fmt.label} document must be a region, got {type(root).__name__}")
    elif not is_valid_root(root):
        raise RootShapeError(f"Parsed NBT was not a Compound or List (got {type(root).__name__})")


def _write_atomic(dest: Path, data: bytes) -> None:
    fd, tmp = tempfile.mkstemp(prefix=f".{dest.name}-", suffix=".tmp", dir=str(dest.parent))
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        # mkstemp creates 0600; keep the permissions of the file being replaced
        if dest.exists():
            os.chmod(tmp, stat.S_IMODE(os.stat(dest).st_mode))
        os.replace(tmp, str(dest))
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class Tab:
    """One open document: its tree, where it lives, and how it is encoded."""

    def __init__(self, root, path, fmt: ContainerFormat, history: Optional[History] = None):
        _check_root(root, fmt)
        self.root = root
        self.path = path if isinstance(path, FilePath) else FilePath(path)
        self.format = fmt
        self.history = history if history is not None else History()
        self.last_close_attempt: Optional[float] = None

    @classmethod
    def open(cls, path) -> "Tab":
        file_path = FilePath(path)
        root, fmt = detect_file(file_path)
        logger.info("Opened %s as %s", file_path.path_str, fmt.label)
        return cls(root, file_path, fmt)

    @classmethod
    def new_empty(cls, region: bool = False) -> "Tab":
        if region:
            return cls(Region(), FilePath(DEFAULT_REGION_FILE_NAME), ContainerFormat.REGION)
        return cls(TagCompound(), FilePath(DEFAULT_FILE_NAME), ContainerFormat.NBT)

    @property
    def name(self) -> str:
        return self.path.name

    def cycle_format(self) -> ContainerFormat:
        self.format = self.format.cycle()
        return self.format

    def rev_cycle_format(self) -> ContainerFormat:
        self.format = self.format.rev_cycle()
        return self.format

    def save(self, destination=None) -> Path:
        """Encode the document and write it to ``destination`` (or the current path).

        A new destination is validated before anything is written. Returns the
        path that was written.
        """
        target = FilePath(destination) if destination is not None else self.path
        data = self.format.encode(self.root)
        _write_atomic(target.path, data)
        if destination is not None:
            self.path.set_path(target.path)
        self.history.on_save()
        logger.info("Saved %s (%s, %d bytes)", target.path_str, self.format.label, len(data))
        return target.path

    def refresh(self, force: bool = False) -> bool:
        """Reload the document from disk.

        With unsaved changes the first call only arms the reload; a second call
        within TAB_CLOSE_DOUBLE_CLICK_INTERVAL goes ahead. Returns True when the
        document was replaced.
        """
        if not force and self.history.has_unsaved_changes:
            now = time.monotonic()
            previous, self.last_close_attempt = self.last_close_attempt, now
            if previous is None or now - previous > TAB_CLOSE_DOUBLE_CLICK_INTERVAL.total_seconds():
                return False

        root, fmt = detect_file(self.path)
        _check_root(root, fmt)

        old_root, old_history = self.root, self.history
        self.root = root
        self.format = fmt
        self.history = History()
        self.last_close_attempt = None
        dispose_later((old_root, old_history))
        del old_root, old_history
        logger.info("Reloaded %s as %s", self.path.path_str, fmt.label)
        return True
