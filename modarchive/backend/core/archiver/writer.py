# modarchive/backend/core/archiver/writer.py
"""
Zip serialization of the staged tree.

- Re-walks the staging dir with its own filter: dependency resolution runs
  between staging and archiving and may drop files that must not ship
  (composer.lock, dot-files, ...).
- Regular files only: file links are archived by content, directory links kept
  literally inside resolved packages are skipped.
- Members are sorted and named with '/' separators whatever the host OS.
- `deterministic` pins member timestamps so two runs over the same tree are
  byte-identical; `quiet` controls per-member logging.
"""
from __future__ import annotations

import stat
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List, Optional

from modarchive.backend.core.utils.logging.logging import ConsoleLog

from .discovery import TreeWalker
from .errors import ArchiveWriteFailure
from .filters import PathFilterSpec

COMPRESSION = {
    "deflate": zipfile.ZIP_DEFLATED,
    "store": zipfile.ZIP_STORED,
}

# earliest timestamp the zip format can represent
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)


@dataclass
class ArchiveSummary:
    archive_path: Path
    files: int
    bytes: int
    members: List[str] = field(default_factory=list)


class ArchiveWriter:
    def __init__(
        self,
        *,
        compression: str = "deflate",
        deterministic: bool = False,
        quiet: bool = True,
        walker: Optional[TreeWalker] = None,
        log: Optional[ConsoleLog] = None,
    ) -> None:
        key = (compression or "deflate").strip().lower()
        if key not in COMPRESSION:
            raise ValueError(f"unknown compression {compression!r} (expected one of {sorted(COMPRESSION)})")
        self.compression = key
        self.deterministic = deterministic
        self.quiet = quiet
        self.walker = walker or TreeWalker()
        self.log = log or ConsoleLog("zip")

    def collect(self, staging_root: Path, spec: PathFilterSpec) -> List[tuple[Path, str]]:
        """Return (absolute path, posix relative path) for every regular file to archive."""
        out: List[tuple[Path, str]] = []
        for entry in self.walker.walk(Path(staging_root), spec):
            # file links are archived by content; directory links are never followed
            if entry.is_directory or not entry.path.is_file():
                continue
            out.append((entry.path, entry.relative_path.as_posix()))
        out.sort(key=lambda x: x[1])
        return out

    def write(
        self,
        staging_root: Path,
        spec: PathFilterSpec,
        archive_path: Path,
        *,
        arc_prefix: Optional[str] = None,
    ) -> Optional[ArchiveSummary]:
        """
        Write every qualifying file under `staging_root` into `archive_path`.

        Member names are relative to `staging_root`, optionally under `arc_prefix`.
        Returns None (and writes nothing) when no file qualifies.
        """
        files = self.collect(staging_root, spec)
        if not files:
            self.log.warn(f"nothing to archive under {staging_root}; no archive written")
            return None

        archive_path = Path(archive_path)
        prefix = PurePosixPath(arc_prefix.replace("\\", "/")) if arc_prefix else None
        members: List[str] = []
        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(archive_path, "w", COMPRESSION[self.compression], strict_timestamps=False) as zf:
                for abs_path, rel_posix in files:
                    name = str(prefix / rel_posix) if prefix else rel_posix
                    self._add(zf, abs_path, name)
                    members.append(name)
                    if not self.quiet:
                        self.log.info(f"+ {name}")
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            self._discard(archive_path)
            raise ArchiveWriteFailure(f"could not write {archive_path}: {e}") from e

        return ArchiveSummary(
            archive_path=archive_path,
            files=len(members),
            bytes=archive_path.stat().st_size,
            members=members,
        )

    def _add(self, zf: zipfile.ZipFile, abs_path: Path, name: str) -> None:
        if not self.deterministic:
            zf.write(abs_path, name)
            return
        info = zipfile.ZipInfo(name, date_time=FIXED_DATE_TIME)
        info.compress_type = COMPRESSION[self.compression]
        mode = stat.S_IMODE(abs_path.stat().st_mode)
        info.external_attr = (stat.S_IFREG | mode) << 16
        zf.writestr(info, abs_path.read_bytes())

    @staticmethod
    def _discard(archive_path: Path) -> None:
        if not (archive_path.is_file() or archive_path.is_symlink()):
            return
        try:
            archive_path.unlink()
        except OSError as e:
            raise ArchiveWriteFailure(f"could not remove partial archive {archive_path}: {e}") from e


__all__ = ["ArchiveWriter", "ArchiveSummary", "COMPRESSION"]
