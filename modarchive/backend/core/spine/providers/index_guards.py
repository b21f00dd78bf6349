# SPDX-License-Identifier: MIT
# File: modarchive/backend/core/spine/providers/index_guards.py
from __future__ import annotations

"""
Capability: index_guards.regenerate.v1
--------------------------------------
Drop an `index.php` guard into every directory of a staged module so a web
server never lists directory contents (PrestaShop module convention).

Payload
-------
- root:       str   (REQUIRED)  Directory to process recursively
- filename:   str   (optional)  Guard file name, default "index.php"
- overwrite:  bool  (optional)  Replace existing guards, default False

Return
------
{"root": "<abs>", "written": <int>, "kept": <int>, "directories": <int>}
"""

from pathlib import Path
from typing import Any, Dict
import os

GUARD_FILENAME = "index.php"

GUARD_CONTENT = """<?php
header('Expires: Mon, 26 Jul 1997 05:00:00 GMT');
header('Last-Modified: ' . gmdate('D, d M Y H:i:s') . ' GMT');

header('Cache-Control: no-store, no-cache, must-revalidate');
header('Cache-Control: post-check=0, pre-check=0', false);
header('Pragma: no-cache');

header('Location: ../');
exit;
"""


def _as_bool(v: Any, default: bool = False) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "yes", "on"}
    return default


def regenerate(root: Path, *, filename: str = GUARD_FILENAME, overwrite: bool = False) -> Dict[str, int]:
    written = kept = directories = 0
    # symlinked directories are left alone; they point outside the staged tree
    for cur, dirs, _files in os.walk(root, followlinks=False):
        dirs.sort()
        directories += 1
        guard = Path(cur) / filename
        if guard.exists() and not overwrite:
            kept += 1
            continue
        guard.write_text(GUARD_CONTENT, encoding="utf-8")
        written += 1
    return {"written": written, "kept": kept, "directories": directories}


def run_v1(task, context: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = dict(getattr(task, "payload", {}) or {})

    root_raw = payload.get("root")
    if not root_raw:
        return {"error": "payload must include 'root'"}
    root = Path(str(root_raw)).expanduser().resolve()
    if not root.is_dir():
        return {"error": f"root not found: {root}", "root": str(root)}

    stats = regenerate(
        root,
        filename=str(payload.get("filename") or GUARD_FILENAME),
        overwrite=_as_bool(payload.get("overwrite"), False),
    )
    return {"root": str(root), **stats}
