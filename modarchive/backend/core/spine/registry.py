# File: modarchive/backend/core/spine/registry.py
"""
Spine Capability Registry (runtime)

- Maps capability name → provider callable `fn(task, context)`.
- Stable `.run(name, payload, context)` API used by the archive pipeline.
- Normalizes provider returns into Artifact records.
- **Promotes plain-dict errors** ({"error": "...", ...}) and raised exceptions
  to Problem artifacts, so the pipeline decides what is fatal.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional
import hashlib
import importlib
import json
import traceback

from .contracts import Artifact, Task
from .errors import CapabilityNotFound, TargetImportError


# ------------------------------- Artifacts ----------------------------------


def _sha256(kind: str, uri: str, meta: Dict[str, Any]) -> str:
    """Compute a deterministic sha256 over a small JSON envelope."""
    blob = json.dumps(
        {"kind": kind, "uri": uri, "meta": meta or {}},
        sort_keys=True,
        ensure_ascii=True,
        separators=(",", ":"),
        default=repr,
    ).encode("utf-8")
    return hashlib.sha256(blob).hexdigest()


def _make_result(cap: str, meta: Dict[str, Any]) -> Artifact:
    uri = f"spine://result/{cap}"
    return Artifact("Result", uri, _sha256("Result", uri, meta), meta)


def _make_problem(cap: str, code: str, message: str, *, details: Optional[Dict[str, Any]] = None,
                  exc: BaseException | None = None) -> Artifact:
    meta: Dict[str, Any] = {
        "problem": {"code": code, "message": message, "retryable": False, "details": details or {}},
        "error": code,
        "message": message,
    }
    if exc is not None:
        meta["exception"] = repr(exc)
        meta["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    uri = f"spine://capability/{cap}"
    return Artifact("Problem", uri, _sha256("Problem", uri, meta), meta)


# ---------------------------- Capability Registry ---------------------------


class CapabilityRegistry:
    """In-memory map of capabilities to provider callables."""

    def __init__(self) -> None:
        # capability -> callable | "module:function"
        self._caps: Dict[str, Any] = {}

    # ---- registration ----

    def register(self, capability: str, target: Any) -> None:
        if not isinstance(capability, str) or not capability:
            raise ValueError("Capability name must be a non-empty string")
        self._caps[capability] = target

    # ---- lookup ----

    def resolve(self, capability: str) -> Callable[..., Any]:
        if capability not in self._caps:
            raise CapabilityNotFound(f"No provider registered for '{capability}'")
        target = self._caps[capability]
        if callable(target):
            return target
        if isinstance(target, str) and ":" in target:
            mod, fn = target.split(":", 1)
            try:
                func = getattr(importlib.import_module(mod.strip()), fn.strip())
            except (ImportError, AttributeError) as e:
                raise TargetImportError(f"Cannot import target for {capability}: {target!r} ({e})") from e
            if not callable(func):
                raise TargetImportError(f"Target for {capability} is not callable: {target!r}")
            # cache resolved callable for future
            self._caps[capability] = func
            return func
        raise TargetImportError(f"Invalid target spec for {capability}: {target!r}")

    def has(self, capability: str) -> bool:
        return capability in self._caps

    def names(self) -> List[str]:
        return sorted(self._caps.keys())

    # ---- normalization (with error promotion) ----

    def _normalize_to_artifacts(self, capability: str, obj: Any) -> List[Artifact]:
        if obj is None:
            return []
        if isinstance(obj, Artifact):
            return [obj]
        if isinstance(obj, list):
            out: List[Artifact] = []
            for x in obj:
                out.extend(self._normalize_to_artifacts(capability, x))
            return out
        if isinstance(obj, dict):
            if "error" in obj:
                details = {k: v for k, v in obj.items() if k != "error"}
                return [_make_problem(capability, "ProviderError", str(obj.get("error")), details=details)]
            return [_make_result(capability, {"result": obj})]
        return [_make_result(capability, {"result": {"value": repr(obj)}, "note": "non-dict coerced via repr"})]

    # ---- execution ----

    def run(self, capability: str, payload: Dict[str, Any], context: Optional[Dict[str, Any]] = None) -> List[Artifact]:
        """Execute a capability; never raises for provider failures (they come back as Problems)."""
        try:
            fn = self.resolve(capability)
        except (CapabilityNotFound, TargetImportError) as e:
            return [_make_problem(capability, type(e).__name__, str(e), exc=e)]

        task = Task(capability=capability, payload=dict(payload or {}))
        try:
            return self._normalize_to_artifacts(capability, fn(task, context or {}))
        except Exception as e:
            return [_make_problem(capability, "ProviderError", f"{e}", exc=e)]
