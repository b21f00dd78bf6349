# File: modarchive/backend/core/spine/loader.py
"""
Spine loader.

- Loads capability mappings from a YAML file into a CapabilityRegistry.
- `build_registry()` returns a registry populated from the packaged
  capabilities.yml (or an explicit file).
"""

from __future__ import annotations

from importlib import import_module
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from .errors import SpineError, TargetImportError
from .registry import CapabilityRegistry

DEFAULT_CAPS_PATH = Path(__file__).resolve().with_name("capabilities.yml")


class CapabilitiesLoader:
    """
    Load capability → provider mapping from a YAML file into a registry.

    YAML shape:
      capability.name.v1:
        target: "module.path:function"
        # (optional metadata keys ignored here)
    """

    def __init__(self, caps_path: Path | str) -> None:
        self.caps_path = Path(caps_path).expanduser().resolve()

    def _load_yaml(self) -> Dict[str, Any]:
        if not self.caps_path.is_file():
            raise SpineError(f"capabilities file not found: {self.caps_path}")
        text = self.caps_path.read_text(encoding="utf-8")
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise SpineError(f"{self.caps_path.name} must contain a mapping at top-level")
        return data

    @staticmethod
    def _resolve_target(spec: str) -> Callable[..., Any]:
        """Resolve 'module.submodule:callable' into a Python callable."""
        if not isinstance(spec, str) or ":" not in spec:
            raise TargetImportError(f"Invalid target spec (expected 'module:callable'): {spec!r}")
        mod_name, fn_name = spec.split(":", 1)
        try:
            mod = import_module(mod_name.strip())
        except ImportError as e:
            raise TargetImportError(f"Cannot import {mod_name!r}: {e}") from e
        fn = getattr(mod, fn_name.strip(), None)
        if not callable(fn):
            raise TargetImportError(f"Target {spec!r} is not callable")
        return fn

    def load(self, registry: CapabilityRegistry) -> CapabilityRegistry:
        """Parse YAML and register each capability target into `registry`."""
        for cap_name, entry in self._load_yaml().items():
            if not isinstance(entry, dict):
                continue
            target = entry.get("target")
            if not target:
                continue  # allow comment-only stanzas
            registry.register(str(cap_name), self._resolve_target(str(target)))
        return registry


def build_registry(caps_path: Optional[Path | str] = None) -> CapabilityRegistry:
    return CapabilitiesLoader(caps_path or DEFAULT_CAPS_PATH).load(CapabilityRegistry())
