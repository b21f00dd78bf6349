from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest


def write(p: Path, content: str = "") -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


symlinks = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")


@pytest.fixture
def linked_module(tmp_path: Path) -> SimpleNamespace:
    """
    module/
      .git/HEAD
      src/app.php
      composer.lock
      README.md
      vendor -> ../pkg           (directory symlink)
    pkg/
      src/Lib.php
      composer.json
      vendor/dep/x.php           (must never be staged through the link)
    """
    module = tmp_path / "module"
    pkg = tmp_path / "pkg"
    write(module / ".git" / "HEAD", "ref: refs/heads/main\n")
    write(module / "src" / "app.php", "<?php echo 'app';\n")
    write(module / "composer.lock", "{}\n")
    write(module / "README.md", "# module\n")
    write(pkg / "src" / "Lib.php", "<?php class Lib {}\n")
    write(pkg / "composer.json", '{"name": "acme/pkg"}\n')
    write(pkg / "vendor" / "dep" / "x.php", "<?php // dep\n")
    os.symlink(pkg, module / "vendor", target_is_directory=True)
    return SimpleNamespace(root=module, pkg=pkg)


class FakeRunner:
    """Stands in for subprocess.run in the dependency provider."""

    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "", exc: BaseException | None = None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.exc = exc
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, argv, **kwargs):
        self.calls.append({"argv": list(argv), **kwargs})
        if self.exc is not None:
            raise self.exc
        return SimpleNamespace(returncode=self.returncode, stdout=self.stdout, stderr=self.stderr)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
