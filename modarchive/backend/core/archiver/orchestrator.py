# modarchive/backend/core/archiver/orchestrator.py
"""
Archive pipeline.

  Start → RemovePriorArchive → RemovePriorStaging → Materialize
        → RegenerateIndexGuards → ResolveDependencies → WriteArchive
        → RemoveStaging → Done

Strictly sequential. Any error stops the run where it happened and is raised to
the caller; the half-built staging tree is left for the next run's cleanup.
The two external steps go through the spine registry, whose providers report
failures as Problem artifacts; this module decides which of those are fatal.
"""
from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from modarchive.backend.core.spine import CapabilityRegistry, build_registry, first_result, problems
from modarchive.backend.core.utils.logging.logging import ConsoleLog

from .config import PackagingConfig
from .discovery import TreeWalker
from .errors import ExternalCommandFailure, from_os_error
from .filters import for_archive, for_linked_target, for_staging
from .staging import StagingMaterializer, StagingSummary
from .symlinks import SymlinkResolver
from .writer import ArchiveSummary, ArchiveWriter

CAP_INDEX_GUARDS = "index_guards.regenerate.v1"
CAP_DEPENDENCIES = "dependencies.resolve.v1"


class PipelineState(str, Enum):
    START = "Start"
    REMOVE_PRIOR_ARCHIVE = "RemovePriorArchive"
    REMOVE_PRIOR_STAGING = "RemovePriorStaging"
    MATERIALIZE = "Materialize"
    REGENERATE_INDEX_GUARDS = "RegenerateIndexGuards"
    RESOLVE_DEPENDENCIES = "ResolveDependencies"
    WRITE_ARCHIVE = "WriteArchive"
    REMOVE_STAGING = "RemoveStaging"
    DONE = "Done"


@dataclass
class PipelineResult:
    archive: Optional[ArchiveSummary] = None
    staging: Optional[StagingSummary] = None
    index_guards: Dict[str, Any] = field(default_factory=dict)
    dependencies: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    states: List[PipelineState] = field(default_factory=list)

    @property
    def archive_path(self) -> Optional[Path]:
        return self.archive.archive_path if self.archive else None


def remove_path(p: Path) -> bool:
    """Delete a file, link or directory tree; an absent path is not an error."""
    try:
        if p.is_symlink() or p.is_file():
            p.unlink()
        elif p.is_dir():
            shutil.rmtree(p)
        else:
            return False
    except FileNotFoundError:
        return False
    except OSError as e:
        raise from_os_error(e, p) from e
    return True


class ArchivePipeline:
    def __init__(
        self,
        cfg: PackagingConfig,
        *,
        registry: Optional[CapabilityRegistry] = None,
        context: Optional[Dict[str, Any]] = None,
        log: Optional[ConsoleLog] = None,
    ) -> None:
        self.cfg = cfg
        self.registry = registry or build_registry()
        self.context = dict(context or {})
        self.log = log or ConsoleLog("archive")
        self.state = PipelineState.START
        self.result = PipelineResult()
        self.walker = TreeWalker()

    # ---- helpers ----

    def _enter(self, state: PipelineState) -> None:
        self.state = state
        self.result.states.append(state)

    def _run_capability(self, capability: str, payload: Dict[str, Any]):
        arts = self.registry.run(capability, payload, self.context)
        return first_result(arts) or {}, problems(arts)

    # ---- stages ----

    def remove_prior_archive(self) -> None:
        if remove_path(self.cfg.archive_path):
            self.log.info(f"removed previous archive {self.cfg.archive_path.name}")

    def remove_staging(self) -> None:
        if remove_path(self.cfg.staging_root):
            self.log.info(f"removed staging dir {self.cfg.staging_root}")

    def materialize(self) -> StagingSummary:
        cfg = self.cfg
        resolver = SymlinkResolver(
            for_linked_target(cfg.exclude_patterns, cfg.staging_dir_name, cfg.dependency_dir),
            walker=self.walker,
        )
        materializer = StagingMaterializer(
            cfg.staging_module_path, resolver, walker=self.walker, log=self.log.child("staging")
        )
        summary = materializer.stage(cfg.source_root, for_staging(cfg.exclude_patterns, cfg.staging_dir_name))
        self.log.info(
            f"staged {summary.files} files, {summary.directories} dirs, "
            f"{summary.links_resolved} linked packages into {cfg.staging_module_path}"
        )
        return summary

    def regenerate_index_guards(self) -> Dict[str, Any]:
        result, probs = self._run_capability(CAP_INDEX_GUARDS, {"root": str(self.cfg.staging_module_path)})
        if probs:
            raise ExternalCommandFailure(CAP_INDEX_GUARDS, "; ".join(f"{p.code}: {p.message}" for p in probs))
        self.log.info(f"index guards: {result.get('written', 0)} written, {result.get('kept', 0)} kept")
        return result

    def resolve_dependencies(self) -> Dict[str, Any]:
        payload = {
            "path": str(self.cfg.staging_module_path),
            "command": list(self.cfg.dependency_command),
        }
        result, probs = self._run_capability(CAP_DEPENDENCIES, payload)

        failure: Optional[str] = None
        rc: Optional[int] = None
        if probs:
            failure = "; ".join(f"{p.code}: {p.message}" for p in probs)
        elif result.get("returncode"):
            rc = int(result["returncode"])
            detail = (result.get("stderr") or result.get("stdout") or "").strip()
            failure = f"exited with status {rc}" + (f": {detail}" if detail else "")

        if failure is None:
            if result.get("skipped"):
                self.log.info(f"dependency resolution skipped ({result.get('reason', 'nothing to do')})")
            else:
                self.log.info("dependencies resolved")
            return result

        if self.cfg.dependency_policy == "fail":
            raise ExternalCommandFailure(CAP_DEPENDENCIES, failure, returncode=rc)
        msg = f"dependency resolution failed, continuing: {failure}"
        self.log.warn(msg)
        self.result.warnings.append(msg)
        return result

    def write_archive(self) -> Optional[ArchiveSummary]:
        cfg = self.cfg
        writer = ArchiveWriter(
            compression=cfg.compression,
            deterministic=cfg.deterministic,
            quiet=cfg.quiet,
            walker=self.walker,
            log=self.log.child("zip"),
        )
        summary = writer.write(
            cfg.staging_module_path,
            for_archive(cfg.exclude_patterns),
            cfg.archive_path,
            arc_prefix=cfg.module_dir_name,
        )
        if summary is not None:
            self.log.stage("📦", f"wrote {summary.archive_path} ({summary.files} files, {summary.bytes} bytes)")
        return summary

    # ---- driver ----

    def run(self) -> PipelineResult:
        self._enter(PipelineState.START)
        self.log.stage("🚀", f"packaging {self.cfg.source_root}")

        self._enter(PipelineState.REMOVE_PRIOR_ARCHIVE)
        self.remove_prior_archive()

        self._enter(PipelineState.REMOVE_PRIOR_STAGING)
        self.remove_staging()

        self._enter(PipelineState.MATERIALIZE)
        self.result.staging = self.materialize()

        self._enter(PipelineState.REGENERATE_INDEX_GUARDS)
        self.result.index_guards = self.regenerate_index_guards()

        self._enter(PipelineState.RESOLVE_DEPENDENCIES)
        self.result.dependencies = self.resolve_dependencies()

        self._enter(PipelineState.WRITE_ARCHIVE)
        self.result.archive = self.write_archive()

        self._enter(PipelineState.REMOVE_STAGING)
        self.remove_staging()

        self._enter(PipelineState.DONE)
        return self.result
