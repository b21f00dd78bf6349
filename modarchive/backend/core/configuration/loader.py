from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


SETTINGS_FILENAME = ".modarchive.yml"


# ──────────────────────────────────────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────────────────────────────────────
class ConfigError(RuntimeError):
    pass


# ──────────────────────────────────────────────────────────────────────────────
# Settings model (.modarchive.yml)
# ──────────────────────────────────────────────────────────────────────────────
def _as_list(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    if isinstance(v, (list, tuple)):
        out: List[str] = []
        for item in v:
            out.extend(_as_list(item))
        return out
    raise ValueError(f"expected a string or a list of strings, got {type(v).__name__}")


class DependencySettings(BaseModel):
    command: Optional[List[str]] = None
    on_error: Literal["ignore", "fail"] = "ignore"

    @field_validator("command", mode="before")
    @classmethod
    def _split_command(cls, v):
        if isinstance(v, str):
            return v.split()
        return v

    @field_validator("on_error", mode="before")
    @classmethod
    def _norm_policy(cls, v):
        return str(v).strip().lower() if v is not None else "ignore"


class ArchiveSettings(BaseModel):
    compression: Literal["deflate", "store"] = "deflate"
    deterministic: bool = False
    quiet: bool = True

    @field_validator("compression", mode="before")
    @classmethod
    def _norm_compression(cls, v):
        return str(v).strip().lower() if v is not None else "deflate"


class ArchiverSettings(BaseModel):
    """
    Shape of the optional per-module settings file:

      exclude: [tests, docs]          # or "tests,docs"
      module: mymodule
      dependency_dir: vendor
      dependency:
        command: ["composer", "install", "--no-dev", "--working-dir={path}"]
        on_error: fail
      archive:
        compression: deflate
        deterministic: true
        quiet: true
    """
    exclude: List[str] = Field(default_factory=list)
    module: Optional[str] = None
    dependency_dir: str = "vendor"
    dependency: DependencySettings = Field(default_factory=DependencySettings)
    archive: ArchiveSettings = Field(default_factory=ArchiveSettings)

    @field_validator("exclude", mode="before")
    @classmethod
    def _coerce_exclude(cls, v):
        return _as_list(v)

    @field_validator("dependency_dir")
    @classmethod
    def _check_dependency_dir(cls, v: str) -> str:
        v = v.strip().strip("/\\")
        if not v:
            raise ValueError("dependency_dir must not be empty")
        return v


# ──────────────────────────────────────────────────────────────────────────────
# YAML helper
# ──────────────────────────────────────────────────────────────────────────────
def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"YAML file is not a mapping: {path}")
    return data


def default_settings_path(source_root: Path) -> Path:
    return Path(source_root) / SETTINGS_FILENAME


def get_archiver(source_root: Path, config_path: Optional[Path] = None) -> ArchiverSettings:
    """
    Load archiver settings.

    An explicit `config_path` must exist; otherwise `<source_root>/.modarchive.yml`
    is used when present and built-in defaults apply when it is not.
    """
    if config_path is not None:
        config_path = Path(config_path).expanduser()
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        path = config_path
    else:
        path = default_settings_path(source_root)

    data = _read_yaml(path)
    try:
        return ArchiverSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e
