"""Configuration management for pluginkit."""

from __future__ import annotations

import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.logger import DEFAULT_FORMAT

ENV_PREFIX = "PLUGINKIT__"


class AppConfig(BaseModel):
    """Application runtime config."""

    model_config = ConfigDict(extra="allow")

    name: str = "pluginkit"
    debug: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration, consumed by ``core.logger.setup_logging``."""

    model_config = ConfigDict(extra="allow")

    level: str = "INFO"
    format: str = DEFAULT_FORMAT
    file_path: str | None = None
    json_format: bool = False


class BusConfig(BaseModel):
    """Runtime settings for the system message bus."""

    model_config = ConfigDict(extra="allow")

    isolate_errors: bool = True


class PluginEntry(BaseModel):
    """One plugin to construct when the system starts."""

    model_config = ConfigDict(extra="forbid")

    target: str
    options: dict[str, Any] = Field(default_factory=dict)
    element: str | None = None

    @field_validator("target")
    @classmethod
    def _validate_target(cls, value: str) -> str:
        module_name, sep, attr = value.partition(":")
        if not sep or not module_name or not attr or ":" in attr:
            raise ValueError(
                f"plugin target must look like 'package.module:ClassName', got {value!r}"
            )
        return value


class SystemConfig(BaseModel):
    """Top-level configuration model."""

    model_config = ConfigDict(extra="allow")

    app: AppConfig = Field(default_factory=AppConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    bus: BusConfig = Field(default_factory=BusConfig)
    plugins: list[PluginEntry] = Field(default_factory=list)


class ConfigManager:
    """Load and validate system configuration from TOML files."""

    def __init__(self, defaults: SystemConfig | None = None) -> None:
        self._defaults = defaults or SystemConfig()

    @property
    def defaults(self) -> SystemConfig:
        """Return default configuration."""
        return self._defaults

    def load(self, path: str | Path) -> SystemConfig:
        """Load TOML file and merge with defaults before validation."""
        config_path = Path(path)
        with config_path.open("rb") as f:
            data = tomllib.load(f)

        return self.from_dict(data)

    def from_dict(self, data: dict[str, Any]) -> SystemConfig:
        """Validate configuration from dict, merged onto defaults and env vars."""
        merged = _deep_merge(
            self._defaults.model_dump(mode="python"),
            data,
        )
        merged_with_env = _apply_env_overrides(merged)
        return SystemConfig.model_validate(merged_with_env)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply env overrides using PLUGINKIT__A__B style keys."""
    overridden = deepcopy(config)

    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        path = key[len(ENV_PREFIX) :].strip("_")
        if not path:
            continue

        keys = [part.lower() for part in path.split("__") if part]
        if not keys:
            continue

        _set_nested(overridden, keys, _parse_env_value(raw_value))

    return overridden


def _set_nested(root: dict[str, Any], keys: list[str], value: Any) -> None:
    current: dict[str, Any] = root
    for key in keys[:-1]:
        child = current.get(key)
        if not isinstance(child, dict):
            child = {}
            current[key] = child
        current = child
    current[keys[-1]] = value


def _parse_env_value(raw: str) -> Any:
    lowered = raw.strip().lower()
    if lowered in {"true", "false"}:
        return lowered == "true"

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw
