# modarchive/backend/core/spine/errors.py
from __future__ import annotations


class SpineError(Exception):
    """Base exception for spine boot/loader failures (not for provider results)."""


class CapabilityNotFound(SpineError):
    """Requested capability is not registered."""


class TargetImportError(SpineError):
    """Target could not be imported/resolved."""
