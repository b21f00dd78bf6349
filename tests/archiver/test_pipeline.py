# File: tests/archiver/test_pipeline.py
"""
End-to-end pipeline runs on temporary modules. The dependency manager is never
executed: the provider gets a fake runner through the pipeline context.

Run:
    pytest -q tests/archiver/test_pipeline.py
"""
from __future__ import annotations

import os
import zipfile
from pathlib import Path

import pytest

from conftest import FakeRunner, symlinks, write
from modarchive.backend.core.archiver.config import PackagingConfig
from modarchive.backend.core.archiver.errors import ExternalCommandFailure, PermissionDenied
from modarchive.backend.core.archiver.orchestrator import (
    CAP_DEPENDENCIES,
    CAP_INDEX_GUARDS,
    ArchivePipeline,
    PipelineState,
    remove_path,
)
from modarchive.backend.core.spine import CapabilityRegistry, build_registry
from modarchive.backend.core.spine.providers import dependencies


def _names(archive: Path) -> list[str]:
    with zipfile.ZipFile(archive) as zf:
        return zf.namelist()


def _pipeline(cfg: PackagingConfig, runner: FakeRunner, registry=None) -> ArchivePipeline:
    return ArchivePipeline(cfg, registry=registry or build_registry(), context={"runner": runner})


def _no_guards_registry() -> CapabilityRegistry:
    reg = CapabilityRegistry()
    reg.register(CAP_INDEX_GUARDS, lambda task, context: {"written": 0, "kept": 0})
    reg.register(CAP_DEPENDENCIES, dependencies.run_v1)
    return reg


@symlinks
def test_worked_example_produces_clean_archive(linked_module, fake_runner):
    cfg = PackagingConfig(source_root=linked_module.root)

    result = _pipeline(cfg, fake_runner).run()

    names = _names(cfg.archive_path)
    assert cfg.archive_path == linked_module.root / "archive.zip"
    assert result.archive_path == cfg.archive_path
    assert set(names) == {
        "index.php",
        "src/app.php",
        "src/index.php",
        "vendor/composer.json",
        "vendor/index.php",
        "vendor/src/Lib.php",
        "vendor/src/index.php",
    }
    assert not any(n.startswith(".git") or n.endswith("composer.lock") or n.endswith("README.md") for n in names)
    assert not any(n.startswith("vendor/vendor") for n in names)
    assert not cfg.staging_root.exists()
    assert result.states[-1] is PipelineState.DONE
    assert [s.value for s in result.states] == [
        "Start",
        "RemovePriorArchive",
        "RemovePriorStaging",
        "Materialize",
        "RegenerateIndexGuards",
        "ResolveDependencies",
        "WriteArchive",
        "RemoveStaging",
        "Done",
    ]
    # no composer.json at the module root: nothing to install
    assert result.dependencies["skipped"] is True
    assert fake_runner.calls == []


def test_archive_round_trips_every_kept_file(tmp_path: Path, fake_runner):
    module = tmp_path / "module"
    files = {
        "src/app.php": "<?php echo 'app';\n",
        "views/templates/hook/front.tpl": "{$var}\n",
        "config.xml": "<module/>\n",
        "logo.png": "PNG",
    }
    for rel, content in files.items():
        write(module / rel, content)
    write(module / "tests" / "AppTest.php", "<?php\n")
    cfg = PackagingConfig(source_root=module, exclude_patterns=("tests",))

    _pipeline(cfg, fake_runner, _no_guards_registry()).run()

    with zipfile.ZipFile(cfg.archive_path) as zf:
        assert sorted(zf.namelist()) == sorted(files)
        for rel, content in files.items():
            assert zf.read(rel).decode("utf-8") == content


def test_second_run_is_identical_and_leaves_no_staging(tmp_path: Path, fake_runner):
    module = tmp_path / "module"
    write(module / "src" / "app.php", "<?php\n")
    write(module / "config.xml", "<module/>\n")
    cfg = PackagingConfig(source_root=module, deterministic=True)

    _pipeline(cfg, fake_runner).run()
    first = cfg.archive_path.read_bytes()
    _pipeline(cfg, fake_runner).run()

    assert cfg.archive_path.read_bytes() == first
    assert not cfg.staging_root.exists()
    # the first archive was not packed into the second one
    assert "archive.zip" not in _names(cfg.archive_path)


def test_module_name_controls_archive_name_and_folder(tmp_path: Path, fake_runner):
    module = tmp_path / "module"
    write(module / "mymodule.php", "<?php\n")
    write(module / "composer.json", "{}\n")
    cfg = PackagingConfig(source_root=module, module_name="mymodule")

    _pipeline(cfg, fake_runner, _no_guards_registry()).run()

    assert cfg.archive_path == module / "mymodule.zip"
    assert sorted(_names(cfg.archive_path)) == ["mymodule/composer.json", "mymodule/mymodule.php"]
    staged = module / "temp_copy" / "mymodule"
    assert fake_runner.calls[0]["argv"] == ["composer", "update", "--no-dev", f"--working-dir={staged.resolve()}"]


def test_prior_archive_and_staging_are_cleared(tmp_path: Path, fake_runner):
    module = tmp_path / "module"
    write(module / "a.php", "<?php\n")
    write(module / "archive.zip", "stale")
    write(module / "temp_copy" / "leftover.php", "<?php\n")
    cfg = PackagingConfig(source_root=module)

    _pipeline(cfg, fake_runner, _no_guards_registry()).run()

    assert _names(cfg.archive_path) == ["a.php"]
    assert not cfg.staging_root.exists()


def test_cleanup_tolerates_missing_targets(tmp_path: Path):
    assert remove_path(tmp_path / "nothing-here") is False
    write(tmp_path / "f.txt")
    assert remove_path(tmp_path / "f.txt") is True
    assert remove_path(tmp_path / "f.txt") is False


def test_nothing_to_archive_writes_nothing(tmp_path: Path, fake_runner):
    module = tmp_path / "module"
    write(module / "README.md", "# docs\n")
    write(module / "composer.lock", "{}\n")
    cfg = PackagingConfig(source_root=module)

    result = _pipeline(cfg, fake_runner, _no_guards_registry()).run()

    assert result.archive is None
    assert not cfg.archive_path.exists()
    assert not cfg.staging_root.exists()


def test_dependency_failure_is_ignored_by_default(tmp_path: Path):
    module = tmp_path / "module"
    write(module / "composer.json", "{}\n")
    write(module / "a.php", "<?php\n")
    runner = FakeRunner(returncode=2, stderr="Your requirements could not be resolved")
    cfg = PackagingConfig(source_root=module)

    result = _pipeline(cfg, runner, _no_guards_registry()).run()

    assert cfg.archive_path.exists()
    assert len(result.warnings) == 1
    assert "could not be resolved" in result.warnings[0]


def test_dependency_failure_aborts_under_fail_policy(tmp_path: Path):
    module = tmp_path / "module"
    write(module / "composer.json", "{}\n")
    write(module / "a.php", "<?php\n")
    runner = FakeRunner(returncode=2, stderr="boom")
    cfg = PackagingConfig(source_root=module, dependency_policy="fail")
    pipeline = _pipeline(cfg, runner, _no_guards_registry())

    with pytest.raises(ExternalCommandFailure) as exc:
        pipeline.run()

    assert exc.value.returncode == 2
    assert pipeline.state is PipelineState.RESOLVE_DEPENDENCIES
    # no compensation: the half-built staging dir stays until the next run
    assert cfg.staging_root.exists()
    assert not cfg.archive_path.exists()


def test_missing_dependency_tool_is_a_failure_under_fail_policy(tmp_path: Path):
    module = tmp_path / "module"
    write(module / "composer.json", "{}\n")
    runner = FakeRunner(exc=FileNotFoundError(2, "No such file or directory", "composer"))
    cfg = PackagingConfig(source_root=module, dependency_policy="fail")

    with pytest.raises(ExternalCommandFailure, match="could not run"):
        _pipeline(cfg, runner, _no_guards_registry()).run()


def test_index_guard_failure_is_always_fatal(tmp_path: Path, fake_runner):
    module = tmp_path / "module"
    write(module / "a.php", "<?php\n")
    reg = _no_guards_registry()
    reg.register(CAP_INDEX_GUARDS, lambda task, context: {"error": "disk full"})
    pipeline = _pipeline(PackagingConfig(source_root=module), fake_runner, reg)

    with pytest.raises(ExternalCommandFailure, match="disk full"):
        pipeline.run()
    assert pipeline.state is PipelineState.REGENERATE_INDEX_GUARDS


@symlinks
def test_file_link_inside_linked_package_reaches_the_archive(tmp_path: Path, fake_runner):
    write(tmp_path / "shared" / "helper.php", "<?php // helper\n")
    pkg = tmp_path / "pkg"
    write(pkg / "Lib.php", "<?php class Lib {}\n")
    os.symlink(Path("..") / "shared" / "helper.php", pkg / "helper.php")
    module = tmp_path / "module"
    write(module / "main.php", "<?php\n")
    os.symlink(pkg, module / "lib", target_is_directory=True)
    cfg = PackagingConfig(source_root=module)

    _pipeline(cfg, fake_runner).run()

    with zipfile.ZipFile(cfg.archive_path) as zf:
        assert sorted(zf.namelist()) == ["index.php", "lib/Lib.php", "lib/helper.php", "lib/index.php", "main.php"]
        assert zf.read("lib/helper.php") == b"<?php // helper\n"


@pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() == 0, reason="root ignores permissions")
def test_unreadable_file_stops_the_run_at_materialize(tmp_path: Path, fake_runner):
    module = tmp_path / "module"
    write(module / "a.php", "<?php\n")
    locked = write(module / "secret.php", "<?php\n")
    locked.chmod(0)
    cfg = PackagingConfig(source_root=module)
    pipeline = _pipeline(cfg, fake_runner, _no_guards_registry())

    try:
        with pytest.raises(PermissionDenied) as exc:
            pipeline.run()
    finally:
        locked.chmod(0o644)

    assert exc.value.path == locked
    assert pipeline.state is PipelineState.MATERIALIZE
    assert cfg.staging_root.exists()
    assert not cfg.archive_path.exists()
