# modarchive/backend/core/archiver/discovery.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterator, List, Optional

from .errors import PathNotFound, PermissionDenied, from_os_error
from .filters import PathFilterSpec


@dataclass(frozen=True)
class FileEntry:
    path: Path                 # absolute, unresolved (walk root / relative_path)
    relative_path: PurePath    # relative to the walk root
    is_directory: bool         # False for directory symlinks (surfaced, never descended)

    @property
    def real_path(self) -> Path:
        return self.path.resolve()


class TreeWalker:
    """
    Deterministic, lazy tree enumeration.

    Directories are yielded before their content. Symlinked directories are not
    followed: they come out as plain entries so SymlinkResolver can decide.
    """

    def __init__(self, spec: Optional[PathFilterSpec] = None) -> None:
        self.spec = spec or PathFilterSpec()

    def walk(self, root: Path, spec: Optional[PathFilterSpec] = None) -> Iterator[FileEntry]:
        spec = spec or self.spec
        root = Path(root).absolute()
        if not root.exists():
            raise PathNotFound(root)
        if not root.is_dir():
            raise PathNotFound(root, f"not a directory: {root}")
        if not os.access(root, os.R_OK | os.X_OK):
            raise PermissionDenied(root)
        return self._iter(root, spec)

    def _iter(self, root: Path, spec: PathFilterSpec) -> Iterator[FileEntry]:
        def _raise(err: OSError) -> None:
            raise from_os_error(err, err.filename or root)

        for cur, dirs, files in os.walk(root, topdown=True, onerror=_raise, followlinks=False):
            cur_path = Path(cur)
            dirs.sort()
            files.sort()

            kept: List[str] = []
            for d in dirs:
                p = cur_path / d
                rel = p.relative_to(root)
                if spec.matches(rel):
                    continue
                if p.is_symlink():
                    yield FileEntry(p, rel, False)
                    continue
                kept.append(d)
                yield FileEntry(p, rel, True)
            # only descend into real, non-excluded directories
            dirs[:] = kept

            for fn in files:
                p = cur_path / fn
                rel = p.relative_to(root)
                if spec.matches(rel):
                    continue
                yield FileEntry(p, rel, False)


__all__ = ["FileEntry", "TreeWalker"]
