# SPDX-License-Identifier: MIT
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class Task:
    """What a provider receives: the capability name and its payload mapping."""
    capability: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Artifact:
    """
    Envelope for provider outputs.
    Examples:
      - kind="Result",  uri="spine://result/<cap>",     meta={"result": {...}}
      - kind="Problem", uri="spine://capability/<cap>", meta={"problem": {...}}
    """
    kind: str
    uri: str
    sha256: str
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_problem(self) -> bool:
        return self.kind == "Problem"

    @property
    def result(self) -> Dict[str, Any]:
        r = self.meta.get("result")
        return r if isinstance(r, dict) else {}


@dataclass(slots=True)
class Problem:
    code: str                # ProviderError | CapabilityNotFound | ...
    message: str
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)


def problems(arts: List[Artifact]) -> List[Problem]:
    out: List[Problem] = []
    for a in arts:
        if not a.is_problem:
            continue
        p = a.meta.get("problem") or {}
        out.append(Problem(
            code=str(p.get("code", "Problem")),
            message=str(p.get("message", "(no message)")),
            retryable=bool(p.get("retryable", False)),
            details=dict(p.get("details") or {}),
        ))
    return out


def first_result(arts: List[Artifact]) -> Optional[Dict[str, Any]]:
    for a in arts:
        if a.kind == "Result":
            return a.result
    return None
