# File: modarchive/backend/core/spine/__init__.py
"""
Spine package facade.

  from modarchive.backend.core.spine import build_registry, CapabilityRegistry
"""

from __future__ import annotations

from .contracts import Artifact, Problem, Task, first_result, problems
from .loader import CapabilitiesLoader, build_registry
from .registry import CapabilityRegistry

__all__ = [
    "Artifact",
    "CapabilitiesLoader",
    "CapabilityRegistry",
    "Problem",
    "Task",
    "build_registry",
    "first_result",
    "problems",
]
