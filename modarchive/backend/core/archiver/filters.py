# modarchive/backend/core/archiver/filters.py
from __future__ import annotations

import fnmatch
from dataclasses import dataclass, replace
from pathlib import PurePath
from typing import Iterable, Tuple

# Version-control control directories, always ignored
VCS_DIRS: Tuple[str, ...] = (".git", ".svn", ".hg", ".bzr", "CVS", "_darcs", ".arch-params", ".monotone")

# Development artifacts that never belong in a deployable module
DEV_DIRS: Tuple[str, ...] = (".idea", "node_modules")
DEV_FILES: Tuple[str, ...] = ("composer.lock", "README.md")

_GLOB_CHARS = set("*?[")


def _norm(pattern: str) -> str:
    return pattern.strip().replace("\\", "/").strip("/")


def _is_glob(pattern: str) -> bool:
    return any(c in _GLOB_CHARS for c in pattern)


def split_patterns(raw: Iterable[str] | str | None) -> Tuple[str, ...]:
    """Accept 'a,b' or ['a', 'b,c'] and return cleaned, de-duplicated patterns in order."""
    if raw is None:
        return ()
    items = [raw] if isinstance(raw, str) else list(raw)
    out: list[str] = []
    for item in items:
        for part in str(item).split(","):
            p = _norm(part)
            if p and p not in out:
                out.append(p)
    return tuple(out)


@dataclass(frozen=True)
class PathFilterSpec:
    """
    Exclusion rules applied to root-relative paths.

    - segment_excludes: a path is excluded when any segment equals one of these
      (a pattern containing '/' instead matches as a path prefix, a pattern with
      glob characters is matched against every segment)
    - name_excludes: file-name globs (only the last segment is checked)
    - ignore_dot_files / ignore_vcs: built-in, on by default

    There is no include override: once excluded, a path is invisible downstream.
    """
    segment_excludes: Tuple[str, ...] = ()
    name_excludes: Tuple[str, ...] = ()
    ignore_dot_files: bool = True
    ignore_vcs: bool = True

    def _segment_hit(self, parts: Tuple[str, ...], rel_posix: str) -> bool:
        for pat in self.segment_excludes:
            if "/" in pat:
                if rel_posix == pat or rel_posix.startswith(pat + "/"):
                    return True
            elif _is_glob(pat):
                if any(fnmatch.fnmatchcase(seg, pat) for seg in parts):
                    return True
            elif pat in parts:
                return True
        return False

    def matches(self, relative_path: PurePath | str) -> bool:
        """True when `relative_path` (relative to the walk root) is excluded."""
        rel = PurePath(relative_path) if not isinstance(relative_path, PurePath) else relative_path
        parts = tuple(p for p in rel.parts if p not in ("", "."))
        if not parts:
            return False
        if self.ignore_dot_files and any(p.startswith(".") for p in parts):
            return True
        if self.ignore_vcs and any(p in VCS_DIRS for p in parts):
            return True
        if self._segment_hit(parts, "/".join(parts)):
            return True
        name = parts[-1]
        return any(fnmatch.fnmatchcase(name, pat) for pat in self.name_excludes)

    def with_excludes(self, *segments: str, names: Iterable[str] = ()) -> "PathFilterSpec":
        seg = self.segment_excludes + tuple(s for s in split_patterns(segments) if s not in self.segment_excludes)
        nm = self.name_excludes + tuple(n for n in names if n not in self.name_excludes)
        return replace(self, segment_excludes=seg, name_excludes=nm)


def base_filter(user_excludes: Iterable[str] = ()) -> PathFilterSpec:
    segs = split_patterns(user_excludes)
    return PathFilterSpec(
        segment_excludes=segs + tuple(d for d in DEV_DIRS if d not in segs),
        name_excludes=DEV_FILES,
    )


def for_staging(user_excludes: Iterable[str], staging_dir_name: str) -> PathFilterSpec:
    """Filter for copying the source tree: never re-copy the staging dir or earlier archives."""
    return base_filter(user_excludes).with_excludes(staging_dir_name, names=("*.zip",))


def for_linked_target(user_excludes: Iterable[str], staging_dir_name: str, dependency_dir: str) -> PathFilterSpec:
    """Filter for a symlinked package: its dependency dir is repopulated by dependency resolution."""
    return for_staging(user_excludes, staging_dir_name).with_excludes(dependency_dir)


def for_archive(user_excludes: Iterable[str]) -> PathFilterSpec:
    """Filter for the final archive walk over the staged tree."""
    return base_filter(user_excludes)
