# File: modarchive/backend/core/archiver/__init__.py
"""
File-only staging and zip primitives for packaging one module.

Main components:
- PathFilterSpec: exclusion rules (VCS, IDE, dev files, user patterns)
- TreeWalker: lazy, sorted traversal yielding FileEntry records
- SymlinkResolver: one-level flattening of directory symlinks
- StagingMaterializer: copy into the staging directory
- ArchiveWriter: zip the staged tree with '/'-separated member names
- ArchivePipeline: the end-to-end run (cleanup → stage → guards → deps → zip → cleanup)
"""

from .config import PackagingConfig
from .discovery import FileEntry, TreeWalker
from .errors import (
    ArchiverError,
    ArchiveWriteFailure,
    CopyFailure,
    ExternalCommandFailure,
    PathNotFound,
    PermissionDenied,
)
from .filters import PathFilterSpec
from .orchestrator import ArchivePipeline, PipelineResult, PipelineState
from .staging import StagingMaterializer
from .symlinks import SymlinkResolver, TraversalContext
from .writer import ArchiveWriter

__all__ = [
    "ArchivePipeline",
    "ArchiveWriteFailure",
    "ArchiveWriter",
    "ArchiverError",
    "CopyFailure",
    "ExternalCommandFailure",
    "FileEntry",
    "PackagingConfig",
    "PathFilterSpec",
    "PathNotFound",
    "PermissionDenied",
    "PipelineResult",
    "PipelineState",
    "StagingMaterializer",
    "SymlinkResolver",
    "TraversalContext",
    "TreeWalker",
]
