from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .errors import PathHasNoNameError


def _name_for_path(path: Path) -> Optional[str]:
    name = path.name
    if not name or name == "..":
        return None
    return name


class FilePath:
    """Location of an open document.

    The display name and string form are cached and only recomputed when the
    path changes, since they are read on every render.
    """

    __slots__ = ("_path", "_name", "_path_str")

    def __init__(self, path):
        path = Path(path)
        name = _name_for_path(path)
        if name is None:
            raise PathHasNoNameError(path)
        self._path = path
        self._name = name
        self._path_str = str(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._name

    @property
    def path_str(self) -> str:
        return self._path_str

    def set_path(self, path) -> Path:
        """Point at ``path`` and return the previous path.

        On PathHasNoNameError nothing is changed.
        """
        path = Path(path)
        name = _name_for_path(path)
        if name is None:
            raise PathHasNoNameError(path)
        previous = self._path
        self._path, self._name, self._path_str = path, name, str(path)
        return previous

    def __fspath__(self) -> str:
        return os.fspath(self._path)

    def __eq__(self, other):
        if not isinstance(other, FilePath):
            return NotImplemented
        return self._path == other._path

    def __hash__(self):
        return hash(self._path)

    def __repr__(self):
        return f"FilePath({self._path_str!r})"
