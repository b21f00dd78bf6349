"""Package a module directory into a clean, production-ready zip archive."""

__version__ = "0.1.0"
