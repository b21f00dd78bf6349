# File: tests/archiver/test_writer.py
from __future__ import annotations

import os
import time
import zipfile
from pathlib import Path

import pytest

from conftest import symlinks, write
from modarchive.backend.core.archiver.errors import ArchiveWriteFailure
from modarchive.backend.core.archiver.filters import for_archive
from modarchive.backend.core.archiver.writer import ArchiveWriter


def _staged(root: Path) -> Path:
    write(root / "src" / "app.php", "<?php echo 'app';\n")
    write(root / "src" / "lib" / "Util.php", "<?php class Util {}\n")
    write(root / "config.xml", "<module/>\n")
    write(root / "composer.lock", "{}\n")
    write(root / ".editorconfig", "root = true\n")
    return root


def test_writes_sorted_posix_members_with_original_bytes(tmp_path: Path):
    staging = _staged(tmp_path / "staging")
    out = tmp_path / "archive.zip"

    summary = ArchiveWriter().write(staging, for_archive([]), out)

    assert summary is not None
    assert summary.files == 3
    with zipfile.ZipFile(out) as zf:
        names = zf.namelist()
        assert names == ["config.xml", "src/app.php", "src/lib/Util.php"]
        for name in names:
            assert zf.read(name) == (staging / name).read_bytes()
    assert summary.members == names
    assert summary.bytes == out.stat().st_size


def test_prefix_places_members_under_module_folder(tmp_path: Path):
    staging = _staged(tmp_path / "staging")
    out = tmp_path / "mymodule.zip"

    ArchiveWriter(compression="store").write(staging, for_archive([]), out, arc_prefix="mymodule")

    with zipfile.ZipFile(out) as zf:
        assert zf.namelist() == ["mymodule/config.xml", "mymodule/src/app.php", "mymodule/src/lib/Util.php"]
        assert all(i.compress_type == zipfile.ZIP_STORED for i in zf.infolist())


def test_no_qualifying_files_means_no_archive(tmp_path: Path):
    staging = tmp_path / "staging"
    write(staging / "README.md", "x")
    write(staging / "tests" / "AppTest.php", "x")
    out = tmp_path / "archive.zip"

    assert ArchiveWriter().write(staging, for_archive(["tests"]), out) is None
    assert not out.exists()


def test_existing_archive_is_overwritten(tmp_path: Path):
    staging = _staged(tmp_path / "staging")
    out = write(tmp_path / "archive.zip", "not a zip")

    ArchiveWriter().write(staging, for_archive([]), out)

    assert zipfile.is_zipfile(out)


def test_deterministic_archives_are_byte_identical(tmp_path: Path):
    staging = _staged(tmp_path / "staging")
    first, second = tmp_path / "a.zip", tmp_path / "b.zip"
    writer = ArchiveWriter(deterministic=True)

    writer.write(staging, for_archive([]), first)
    later = time.time() + 3600
    os.utime(staging / "src" / "app.php", (later, later))
    writer.write(staging, for_archive([]), second)

    assert first.read_bytes() == second.read_bytes()
    with zipfile.ZipFile(first) as zf:
        assert {i.date_time for i in zf.infolist()} == {(1980, 1, 1, 0, 0, 0)}


@symlinks
@pytest.mark.parametrize("deterministic", [False, True])
def test_file_links_are_archived_by_content_directory_links_are_not(tmp_path: Path, deterministic: bool):
    staging = _staged(tmp_path / "staging")
    outside = write(tmp_path / "outside" / "helper.php", "<?php // helper\n")
    os.symlink(outside.parent, staging / "linked_dir", target_is_directory=True)
    os.symlink(outside, staging / "src" / "helper.php")
    os.symlink(tmp_path / "gone.php", staging / "dangling.php")
    out = tmp_path / "archive.zip"

    summary = ArchiveWriter(deterministic=deterministic).write(staging, for_archive([]), out)

    assert "src/helper.php" in summary.members
    assert "dangling.php" not in summary.members
    assert not any(m.startswith("linked_dir") for m in summary.members)
    with zipfile.ZipFile(out) as zf:
        assert zf.read("src/helper.php") == b"<?php // helper\n"


def test_verbose_mode_lists_members(tmp_path: Path, capsys):
    staging = _staged(tmp_path / "staging")

    ArchiveWriter(quiet=False).write(staging, for_archive([]), tmp_path / "archive.zip")
    loud = capsys.readouterr().out
    ArchiveWriter(quiet=True).write(staging, for_archive([]), tmp_path / "archive2.zip")
    quiet = capsys.readouterr().out

    assert "src/app.php" in loud
    assert "src/app.php" not in quiet


def test_unwritable_target_raises_and_leaves_nothing(tmp_path: Path):
    staging = _staged(tmp_path / "staging")
    target = tmp_path / "archive.zip"
    target.mkdir()

    with pytest.raises(ArchiveWriteFailure):
        ArchiveWriter().write(staging, for_archive([]), target)
    assert target.is_dir()


def test_unknown_compression_is_rejected():
    with pytest.raises(ValueError):
        ArchiveWriter(compression="lzma-ish")
