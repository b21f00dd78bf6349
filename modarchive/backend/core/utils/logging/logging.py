from __future__ import annotations

import sys
from typing import TextIO


def _one_line(s: str, max_len: int = 160) -> str:
    s = " ".join((s or "").split())
    return s[:max_len] + ("…" if len(s) > max_len else "")


class ConsoleLog:
    """Tagged one-line console output. `quiet` mutes info/stage lines only."""

    def __init__(self, tag: str, *, quiet: bool = False, stream: TextIO | None = None):
        self.tag = tag
        self.quiet = quiet
        self.stream = stream

    def _emit(self, glyph: str, msg: str) -> None:
        print(f"[{self.tag} {glyph}] {_one_line(msg)}", file=self.stream or sys.stdout, flush=True)

    def info(self, msg: str):
        if not self.quiet:
            self._emit("✅", msg)

    def warn(self, msg: str):
        self._emit("⚠️", msg)

    def error(self, msg: str):
        # errors carry paths and process output; never truncate them
        print(f"[{self.tag} ❌] {msg}", file=self.stream or sys.stderr, flush=True)

    def stage(self, emoji: str, msg: str):
        if not self.quiet:
            self._emit(emoji, msg)

    def child(self, tag: str) -> "ConsoleLog":
        return ConsoleLog(tag, quiet=self.quiet, stream=self.stream)
