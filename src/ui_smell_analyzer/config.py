"""Analyzer configuration: framework vocabulary and reporting thresholds.

Defaults come from the reactive registry. A project can extend or override
them with a YAML file (``.ui-smell.yml`` at the project root, or an explicit
path):

    registry_version: 1
    framework_modules: [compose, myui]
    reactive_types:
      Signal: mutable_value_holder
    min_chain_length: 3
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ui_smell_analyzer.ir.reactive_registry import (
    DEFAULT_COLLECTION_OPERATIONS,
    DEFAULT_CREATION_FUNCTIONS,
    DEFAULT_FRAMEWORK_MODULES,
    DEFAULT_REACTIVE_TYPES,
    DEFAULT_REMEMBER_WRAPPERS,
    DEFAULT_STATE_HOOKS,
    DEFAULT_UI_MARKERS,
    REGISTRY_VERSION,
    ReactiveKind,
)

log = logging.getLogger(__name__)

CONFIG_FILENAMES = (".ui-smell.yml", ".ui-smell.yaml")

# Keys whose YAML value extends the default mapping instead of replacing it
_MERGED_MAPPINGS = ("reactive_types", "creation_functions")


class ConfigError(Exception):
    """Raised for unreadable or invalid analyzer configuration."""


class AnalyzerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    registry_version: int = REGISTRY_VERSION
    framework_modules: list[str] = Field(default_factory=lambda: list(DEFAULT_FRAMEWORK_MODULES))
    ui_markers: list[str] = Field(default_factory=lambda: list(DEFAULT_UI_MARKERS))
    reactive_types: dict[str, ReactiveKind] = Field(
        default_factory=lambda: dict(DEFAULT_REACTIVE_TYPES)
    )
    creation_functions: dict[str, ReactiveKind] = Field(
        default_factory=lambda: dict(DEFAULT_CREATION_FUNCTIONS)
    )
    remember_wrappers: list[str] = Field(default_factory=lambda: list(DEFAULT_REMEMBER_WRAPPERS))
    collection_operations: list[str] = Field(
        default_factory=lambda: list(DEFAULT_COLLECTION_OPERATIONS)
    )
    state_hooks: list[str] = Field(default_factory=lambda: list(DEFAULT_STATE_HOOKS))
    min_chain_length: int = Field(default=2, ge=1)
    severity: Literal["error", "warning", "info"] = "warning"


def load_config(
    config_path: Path | None = None,
    project_path: Path | None = None,
) -> AnalyzerConfig:
    """Load configuration from an explicit file, the project root, or defaults.

    Args:
        config_path: Explicit YAML file. Must exist when given.
        project_path: Project root searched for ``.ui-smell.yml``.

    Returns:
        AnalyzerConfig with file values merged over the defaults.
    """
    path = config_path
    if path is None and project_path is not None:
        for name in CONFIG_FILENAMES:
            candidate = project_path / name
            if candidate.is_file():
                path = candidate
                break

    if path is None:
        return AnalyzerConfig()

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")

    log.info("Loaded analyzer config from %s", path)
    return config_from_mapping(data)


def config_from_mapping(data: dict) -> AnalyzerConfig:
    """Validate a raw mapping and merge it over the defaults."""
    version = data.get("registry_version", REGISTRY_VERSION)
    if version != REGISTRY_VERSION:
        raise ConfigError(
            f"Unsupported registry_version {version!r} (expected {REGISTRY_VERSION})"
        )

    merged = AnalyzerConfig().model_dump()
    for key, value in data.items():
        if key in _MERGED_MAPPINGS and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value

    try:
        return AnalyzerConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid analyzer config: {exc}") from exc
