# modarchive/backend/core/archiver/symlinks.py
"""
Symlink flattening for the staging copy.

A directory symlink found while walking the module is staged as if its target
had been copied into the link's location. Only one level is resolved: directory
links met inside an already-resolved target are reproduced as links, never
followed, which bounds recursion and rules out cycles (e.g. a package linking
back to the module). File links are copied by content at any depth.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path, PurePath
from typing import Iterator, Optional, Tuple

from .discovery import FileEntry, TreeWalker
from .filters import PathFilterSpec

# links inside a resolved target are never followed
MAX_LINK_DEPTH = 1


@dataclass(frozen=True)
class TraversalContext:
    root: Path                          # root the current walk is relative to
    prefix: PurePath = PurePath()       # where that root lands inside the staging tree
    link_depth: int = 0

    @property
    def inside_link(self) -> bool:
        return self.link_depth > 0

    def staged_relative(self, entry: FileEntry) -> PurePath:
        return self.prefix / entry.relative_path

    def descend(self, target: Path, at: PurePath) -> "TraversalContext":
        return replace(self, root=target, prefix=at, link_depth=self.link_depth + 1)


class SymlinkResolver:
    def __init__(
        self,
        linked_filter: PathFilterSpec,
        *,
        walker: Optional[TreeWalker] = None,
    ) -> None:
        self.linked_filter = linked_filter
        self.walker = walker or TreeWalker()

    @staticmethod
    def is_symlink(entry: FileEntry, ctx: TraversalContext) -> bool:
        """An entry is a link iff its resolved path differs from the path rebuilt from the walk root."""
        expected = ctx.root.resolve() / entry.relative_path
        return entry.real_path != expected

    def can_resolve(self, ctx: TraversalContext) -> bool:
        return ctx.link_depth < MAX_LINK_DEPTH

    def resolve(
        self, entry: FileEntry, ctx: TraversalContext
    ) -> Optional[Tuple[TraversalContext, Iterator[FileEntry]]]:
        """
        Re-root traversal into a directory link's target.

        Returns the child context and a fresh walk of the target (dependency dir
        excluded), or None when `entry` is not a resolvable directory link.
        """
        if entry.is_directory or not self.can_resolve(ctx):
            return None
        if not self.is_symlink(entry, ctx):
            return None
        target = entry.real_path
        if not target.is_dir():
            return None
        child = ctx.descend(target, ctx.staged_relative(entry))
        return child, self.walker.walk(target, self.linked_filter)
