"""
Audit configuration: which files to scan, which rules to run, and how.

Settings come from three layers, lowest priority first: the defaults on
AuditConfig, an optional YAML file (``.pyaudit.yaml`` and friends), and CLI
flags applied with ``AuditConfig.merged()``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pyaudit.errors import ConfigurationError
from pyaudit.traversal import DEFAULT_EXTENSIONS, normalize_extension

CONFIG_FILENAMES = [".pyaudit.yaml", ".pyaudit.yml", "pyaudit.yaml", "pyaudit.yml"]

DEFAULT_TIMEOUT = 30.0


class AuditConfig(BaseModel):
    """Scanner configuration: file selection, enabled rules, worker pool and timeouts."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS), min_length=1)
    exclude_paths: list[str] = Field(default_factory=list)
    # Rule ids to enable; empty means every rule in the catalog.
    rules: list[str] = Field(default_factory=list)
    # None means traversal.DEFAULT_IGNORE_DIRS.
    ignore_dirs: Optional[list[str]] = None
    follow_symlinks: bool = False
    workers: Optional[int] = Field(None, ge=1)
    # Seconds per file; None or 0 disables the limit.
    timeout: Optional[float] = Field(DEFAULT_TIMEOUT, ge=0)
    catalog: Optional[Path] = None

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for ext in value:
            ext = normalize_extension(ext)
            if len(ext) < 2:
                raise ValueError("extensions must not be empty")
            if ext not in normalized:
                normalized.append(ext)
        return normalized

    @field_validator("rules")
    @classmethod
    def _dedupe_rules(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(r.strip() for r in value if r.strip()))

    def merged(self, **overrides: Any) -> "AuditConfig":
        """
        Return a copy with the given overrides applied; None values are ignored.

        Raises:
            ConfigurationError: if an override is invalid.
        """
        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        return _validate({**self.model_dump(), **updates}, source="command line")


def _validate(data: dict[str, Any], source: str) -> AuditConfig:
    try:
        return AuditConfig.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"invalid configuration ({source}): {problems}") from e


def find_config_file(config_path: Optional[Path] = None, search_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Return the config file to use, or None if there is none.

    An explicit path wins; otherwise search_dir is searched first, then the
    current working directory.
    """
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigurationError(f"Config file not found: {config_path}")
        return config_path

    bases = [Path.cwd()]
    if search_dir is not None and search_dir.resolve() != bases[0].resolve():
        bases.insert(0, search_dir)
    for base in bases:
        for filename in CONFIG_FILENAMES:
            path = base / filename
            if path.is_file():
                return path
    return None


def load_config(config_path: Optional[Path] = None, search_dir: Optional[Path] = None) -> AuditConfig:
    """
    Load configuration from a YAML file, or defaults if none is found.

    A relative ``catalog`` entry is resolved against the config file's directory.

    Raises:
        ConfigurationError: unreadable file, invalid YAML, unknown keys or bad values.
    """
    path = find_config_file(config_path, search_dir)
    if path is None:
        return AuditConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")

    catalog = data.get("catalog")
    if isinstance(catalog, str) and not Path(catalog).is_absolute():
        data["catalog"] = str(path.parent / catalog)

    return _validate(data, source=str(path))
