# modarchive/backend/core/archiver/config.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple

from modarchive.backend.core.configuration.loader import ArchiverSettings, ConfigError
from modarchive.backend.core.spine.providers.dependencies import DEFAULT_COMMAND

from .errors import PathNotFound
from .filters import split_patterns

STAGING_DIR_NAME = "temp_copy"
DEFAULT_ARCHIVE_NAME = "archive"
ARCHIVE_SUFFIX = ".zip"
DEPENDENCY_POLICIES = ("ignore", "fail")


def _strip_zip(name: str) -> str:
    return name[: -len(ARCHIVE_SUFFIX)] if name.lower().endswith(ARCHIVE_SUFFIX) else name


@dataclass(frozen=True)
class PackagingConfig:
    """
    Everything one packaging run needs; built once, never mutated.

    Layout on disk:
      <source_root>/<archive_name>                  final archive
      <source_root>/temp_copy[/<module>]            staging tree (module subdir only
                                                    when a module name was given)
    """
    source_root: Path
    exclude_patterns: Tuple[str, ...] = ()
    module_name: Optional[str] = None
    staging_dir_name: str = STAGING_DIR_NAME
    dependency_dir: str = "vendor"
    dependency_command: Tuple[str, ...] = DEFAULT_COMMAND
    dependency_policy: str = "ignore"
    compression: str = "deflate"
    deterministic: bool = False
    quiet: bool = True

    def __post_init__(self) -> None:
        if self.dependency_policy not in DEPENDENCY_POLICIES:
            raise ConfigError(
                f"dependency policy must be one of {DEPENDENCY_POLICIES}, got {self.dependency_policy!r}"
            )
        if self.module_name is not None:
            name = _strip_zip(self.module_name.strip())
            if not name or "/" in name or "\\" in name or name in (".", ".."):
                raise ConfigError(f"invalid module name: {self.module_name!r}")

    # ---- derived paths ----

    @property
    def module_dir_name(self) -> Optional[str]:
        return _strip_zip(self.module_name.strip()) if self.module_name else None

    @property
    def archive_name(self) -> str:
        base = (self.module_name or DEFAULT_ARCHIVE_NAME).strip()
        return base if base.lower().endswith(ARCHIVE_SUFFIX) else base + ARCHIVE_SUFFIX

    @property
    def archive_path(self) -> Path:
        return self.source_root / self.archive_name

    @property
    def staging_root(self) -> Path:
        return self.source_root / self.staging_dir_name

    @property
    def staging_module_path(self) -> Path:
        sub = self.module_dir_name
        return self.staging_root / sub if sub else self.staging_root

    # ---- construction ----

    @classmethod
    def build(
        cls,
        *,
        path: Optional[Path | str] = None,
        exclude: Iterable[str] | str | None = None,
        module: Optional[str] = None,
        settings: Optional[ArchiverSettings] = None,
        dependency_policy: Optional[str] = None,
        compression: Optional[str] = None,
        deterministic: Optional[bool] = None,
        quiet: Optional[bool] = None,
    ) -> "PackagingConfig":
        """
        Merge CLI input over file settings over defaults.

        A missing path means the current working directory; excludes from both
        sources are combined.
        """
        settings = settings or ArchiverSettings()
        root = Path(path).expanduser() if path else Path.cwd()
        root = root.resolve()
        if not root.is_dir():
            raise PathNotFound(root, f"module path is not a directory: {root}")

        return cls(
            source_root=root,
            exclude_patterns=split_patterns(list(settings.exclude) + list(split_patterns(exclude))),
            module_name=(module or settings.module or None),
            dependency_dir=settings.dependency_dir,
            dependency_command=tuple(settings.dependency.command or DEFAULT_COMMAND),
            dependency_policy=(dependency_policy or settings.dependency.on_error),
            compression=(compression or settings.archive.compression),
            deterministic=settings.archive.deterministic if deterministic is None else deterministic,
            quiet=settings.archive.quiet if quiet is None else quiet,
        )
