# modarchive/backend/core/archiver/errors.py
from __future__ import annotations

from pathlib import Path
from typing import Optional


class ArchiverError(Exception):
    """Base exception for every failure that aborts a packaging run."""


class PathNotFound(ArchiverError):
    """A traversal root or a file to copy does not exist."""

    def __init__(self, path: Path | str, message: Optional[str] = None) -> None:
        self.path = Path(path)
        super().__init__(message or f"path not found: {self.path}")


class PermissionDenied(ArchiverError):
    """A directory could not be listed or a file could not be read/written."""

    def __init__(self, path: Path | str, message: Optional[str] = None) -> None:
        self.path = Path(path)
        super().__init__(message or f"permission denied: {self.path}")


class CopyFailure(ArchiverError):
    """Copying into the staging tree failed for a reason other than permissions (disk full, ...)."""


class ArchiveWriteFailure(ArchiverError):
    """The zip archive could not be written."""


class ExternalCommandFailure(ArchiverError):
    """Index-guard regeneration or dependency resolution reported a failure."""

    def __init__(self, capability: str, message: str, returncode: Optional[int] = None) -> None:
        self.capability = capability
        self.returncode = returncode
        super().__init__(f"{capability}: {message}")


def from_os_error(exc: OSError, path: Path | str) -> ArchiverError:
    """Map an OSError raised while touching `path` onto the archiver error kinds."""
    if isinstance(exc, FileNotFoundError):
        return PathNotFound(path, f"path not found: {path} ({exc.strerror or exc})")
    if isinstance(exc, PermissionError):
        return PermissionDenied(path, f"permission denied: {path} ({exc.strerror or exc})")
    return CopyFailure(f"{path}: {exc}")
