# modarchive/backend/core/archiver/staging.py
from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from modarchive.backend.core.utils.logging.logging import ConsoleLog

from .discovery import FileEntry, TreeWalker
from .errors import from_os_error
from .filters import PathFilterSpec
from .symlinks import SymlinkResolver, TraversalContext


@dataclass
class StagingSummary:
    files: int = 0
    directories: int = 0
    links_resolved: int = 0
    links_kept: int = 0


class StagingMaterializer:
    """
    Copy a filtered, symlink-flattened tree into `staging_dir`.

    Fail-fast: the first OSError is raised as an archiver error. Nothing already
    copied is rolled back; the next run starts by deleting the staging dir.
    """

    def __init__(
        self,
        staging_dir: Path,
        resolver: SymlinkResolver,
        *,
        walker: Optional[TreeWalker] = None,
        log: Optional[ConsoleLog] = None,
    ) -> None:
        self.staging_dir = Path(staging_dir)
        self.resolver = resolver
        self.walker = walker or TreeWalker()
        self.log = log or ConsoleLog("staging", quiet=True)
        self.summary = StagingSummary()

    def stage(self, source_root: Path, spec: PathFilterSpec) -> StagingSummary:
        """Walk `source_root` with `spec` and materialize every entry."""
        source_root = Path(source_root).absolute()
        self._mkdir(self.staging_dir)
        self.materialize(self.walker.walk(source_root, spec), TraversalContext(root=source_root))
        return self.summary

    def materialize(self, entries: Iterable[FileEntry], ctx: TraversalContext) -> None:
        for entry in entries:
            self._copy_entry(entry, ctx)

    # ---- per-entry ----

    def _copy_entry(self, entry: FileEntry, ctx: TraversalContext) -> None:
        dest = self.staging_dir / ctx.staged_relative(entry)

        if entry.is_directory:
            self._mkdir(dest)
            self.summary.directories += 1
            return

        resolved = self.resolver.resolve(entry, ctx)
        if resolved is not None:
            child_ctx, child_entries = resolved
            self.log.info(f"following link {entry.relative_path.as_posix()} -> {child_ctx.root}")
            self._mkdir(dest)
            self.summary.links_resolved += 1
            self.materialize(child_entries, child_ctx)
            return

        if ctx.inside_link and entry.path.is_symlink() and entry.path.is_dir():
            self._copy_link(entry, dest)
            self.summary.links_kept += 1
            return

        self._copy_file(entry, dest)
        self.summary.files += 1

    def _mkdir(self, p: Path) -> None:
        try:
            p.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise from_os_error(e, p) from e

    def _clear_destination(self, dest: Path) -> None:
        # writing through a link sitting at dest could escape the staging tree
        if dest.is_symlink():
            dest.unlink()

    def _copy_file(self, entry: FileEntry, dest: Path) -> None:
        self._mkdir(dest.parent)
        try:
            self._clear_destination(dest)
            shutil.copy2(entry.path, dest)
        except OSError as e:
            raise from_os_error(e, entry.path) from e

    def _copy_link(self, entry: FileEntry, dest: Path) -> None:
        self._mkdir(dest.parent)
        try:
            self._clear_destination(dest)
            if dest.exists():
                if dest.is_dir():
                    shutil.rmtree(dest)
                else:
                    dest.unlink()
            os.symlink(os.readlink(entry.path), dest)
        except OSError as e:
            raise from_os_error(e, entry.path) from e
