# SPDX-License-Identifier: MIT
# File: modarchive/backend/core/spine/providers/dependencies.py
from __future__ import annotations

"""
Capability: dependencies.resolve.v1
-----------------------------------
Install production-only third-party dependencies into a staged module by
running the dependency manager as a subprocess (composer by default).

The provider only reports: a non-zero exit code comes back as a normal result
and the caller applies its failure policy. Failing to launch the command at all
is reported as an error.

Payload
-------
- path:      str        (REQUIRED)  Module directory (working dir of the tool)
- command:   list[str]  (optional)  argv template; "{path}" is substituted
- manifest:  str        (optional)  File that must exist for the step to run,
                                    default "composer.json"; "" disables the check

Context
-------
- runner:    callable   (optional)  Replacement for subprocess.run (tests)

Return
------
{"path": "<abs>", "command": [...], "returncode": <int>, "stdout": "...",
 "stderr": "...", "skipped": false}
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence
import subprocess

DEFAULT_COMMAND: tuple[str, ...] = ("composer", "update", "--no-dev", "--working-dir={path}")
DEFAULT_MANIFEST = "composer.json"

# keep reported process output readable in a console line / Problem artifact
_TAIL_CHARS = 4000


def build_command(template: Sequence[str], path: Path) -> List[str]:
    return [str(part).replace("{path}", str(path)) for part in template]


def _tail(s: str | None) -> str:
    s = s or ""
    return s[-_TAIL_CHARS:]


def run_v1(task, context: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = dict(getattr(task, "payload", {}) or {})

    path_raw = payload.get("path")
    if not path_raw:
        return {"error": "payload must include 'path'"}
    path = Path(str(path_raw)).expanduser().resolve()
    if not path.is_dir():
        return {"error": f"path not found: {path}", "path": str(path)}

    template = payload.get("command") or DEFAULT_COMMAND
    if isinstance(template, str):
        template = template.split()
    argv = build_command(template, path)

    manifest = payload.get("manifest", DEFAULT_MANIFEST)
    if manifest and not (path / str(manifest)).is_file():
        return {
            "path": str(path),
            "command": argv,
            "returncode": 0,
            "skipped": True,
            "reason": f"no {manifest} in {path}",
        }

    runner: Callable[..., Any] = (context or {}).get("runner") or subprocess.run
    try:
        completed = runner(
            argv,
            cwd=str(path),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except OSError as e:
        # command missing / not executable
        return {"error": f"could not run {argv[0]!r}: {e}", "path": str(path), "command": argv}

    return {
        "path": str(path),
        "command": argv,
        "returncode": int(completed.returncode),
        "stdout": _tail(completed.stdout),
        "stderr": _tail(completed.stderr),
        "skipped": False,
    }
