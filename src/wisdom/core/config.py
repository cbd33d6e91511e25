# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Layered configuration for the wisdom MCP server.

Sources, lowest to highest precedence:
  1. Built-in defaults
  2. Global file: $XDG_CONFIG_HOME/claude/wisdom.json (~/.config/claude/wisdom.json)
  3. Environment variables (WISDOM_*)
  4. Project file: <project_root>/.wisdom/config.json

The project root is the nearest ancestor of the working directory that
contains a ``.wisdom`` or ``.git`` directory.

Usage:
    from wisdom.core.config import load_config
    loaded = load_config()
    gateway_url = loaded.config.gateway_url
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigException, ValidationException

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "http://localhost:8080"
PROJECT_CONFIG_FILE = Path(".wisdom") / "config.json"
GLOBAL_CONFIG_FILE = "wisdom.json"


def _normalize_uuid(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    try:
        return str(UUID(str(value)))
    except ValueError:
        raise ValueError(f"not a valid UUID: {value}") from None


class WisdomConfig(BaseModel):
    """Merged configuration record."""

    model_config = ConfigDict(extra="ignore")

    # Agent identity
    agent_uuid: str | None = Field(default=None, description="Registered agent UUID")
    private_key: str | None = Field(default=None, description="Base64 Ed25519 private key seed")

    # Gateway / hub
    gateway_url: str = Field(default=DEFAULT_GATEWAY_URL, description="Gateway base URL")
    hub_host: str | None = Field(default=None, description="Hub host:port used for address construction")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout toward the gateway, in seconds")

    # Working context
    current_project: str | None = Field(default=None, description="Current project UUID")
    default_tags: list[str] = Field(default_factory=list, description="Tag UUIDs applied to new fragments")
    default_transform: str | None = Field(default=None, description="Default transform UUID")

    # Process
    cache_max_size: int = Field(default=5000, ge=1, description="Address cache capacity")
    log_level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_format: str = Field(default="", description="Log format: 'json', 'text', or '' (auto-detect)")

    @field_validator("agent_uuid", "current_project", "default_transform", mode="before")
    @classmethod
    def _check_uuid(cls, value: Any) -> str | None:
        return _normalize_uuid(value)

    @field_validator("default_tags", mode="before")
    @classmethod
    def _check_uuid_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        return [_normalize_uuid(v) for v in value if v]

    @field_validator("gateway_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"gateway_url must be an http(s) URL: {value}")
        return value.rstrip("/")


def _valid_keys(data: dict[str, Any], source: str | Path) -> dict[str, Any]:
    """Validate a partial config key by key, dropping and logging bad values.

    Returned values are normalized (UUIDs lowercased, numbers parsed).
    """
    valid: dict[str, Any] = {}
    for key, value in data.items():
        if key not in WisdomConfig.model_fields:
            continue
        try:
            checked = WisdomConfig.model_validate({key: value})
        except ValidationError as e:
            reason = e.errors()[0].get("msg")
            logger.warning(f"Ignoring invalid config key {key!r} from {source}: {reason}")
            continue
        valid[key] = getattr(checked, key)
    return valid


class EnvSettings(BaseSettings):
    """Environment overrides. Unset variables stay None and do not override.

    Values are read as raw strings and checked key by key in ``overrides``,
    so one malformed variable cannot block the others.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    private_key: str | None = Field(default=None, validation_alias="WISDOM_PRIVATE_KEY")
    gateway_url: str | None = Field(default=None, validation_alias="WISDOM_GATEWAY_URL")
    agent_uuid: str | None = Field(default=None, validation_alias="WISDOM_AGENT_UUID")
    current_project: str | None = Field(default=None, validation_alias="WISDOM_PROJECT_UUID")
    hub_host: str | None = Field(default=None, validation_alias="WISDOM_HUB_HOST")
    cache_max_size: str | None = Field(default=None, validation_alias="WISDOM_CACHE_MAX_SIZE")
    timeout: str | None = Field(default=None, validation_alias="WISDOM_TIMEOUT")
    log_level: str | None = Field(default=None, validation_alias="WISDOM_LOG_LEVEL")
    log_format: str | None = Field(default=None, validation_alias="WISDOM_LOG_FORMAT")

    def overrides(self) -> dict[str, Any]:
        return _valid_keys(self.model_dump(exclude_none=True), "environment")


@dataclass
class ConfigPaths:
    """Configuration file locations discovered while loading."""

    project_root: Path | None
    project_config: Path | None
    global_config: Path


@dataclass
class LoadedConfig:
    """Merged configuration together with where it came from."""

    config: WisdomConfig
    paths: ConfigPaths


def find_project_root(start_dir: Path | str | None = None) -> Path | None:
    """Walk upwards looking for a .wisdom or .git directory."""
    directory = Path(start_dir or Path.cwd()).resolve()
    while True:
        if (directory / ".wisdom").is_dir() or (directory / ".git").exists():
            return directory
        if directory.parent == directory:
            return None
        directory = directory.parent


def global_config_dir() -> Path:
    """Global config directory, following XDG when set."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "claude"
    return Path.home() / ".config" / "claude"


def _load_config_file(path: Path) -> dict[str, Any] | None:
    """Read a partial config from a JSON file.

    Unreadable files are ignored as a whole, invalid keys one at a time.
    """
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading config from {path}: {e}")
        return None

    if not isinstance(data, dict):
        logger.error(f"Invalid config at {path}: expected a JSON object")
        return None

    return _valid_keys(data, path)


def merge_config(config: WisdomConfig, updates: dict[str, Any]) -> WisdomConfig:
    """Return a new config with ``updates`` applied on top of ``config``.

    Raises:
        ValidationException: If the merged result is invalid.
    """
    merged = config.model_dump()
    merged.update(updates)
    try:
        return WisdomConfig.model_validate(merged)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationException(f"Invalid configuration: {first.get('msg')}", field=field or None) from e


def load_config(start_dir: Path | str | None = None) -> LoadedConfig:
    """Load configuration following the documented hierarchy."""
    project_root = find_project_root(start_dir)
    paths = ConfigPaths(
        project_root=project_root,
        project_config=project_root / PROJECT_CONFIG_FILE if project_root else None,
        global_config=global_config_dir() / GLOBAL_CONFIG_FILE,
    )

    merged: dict[str, Any] = {}
    layers = [
        _load_config_file(paths.global_config),
        EnvSettings().overrides(),
        _load_config_file(paths.project_config) if paths.project_config else None,
    ]
    for layer in layers:
        if layer:
            # Lists replace rather than merge
            merged.update(layer)

    try:
        config = WisdomConfig.model_validate(merged)
    except ValidationError as e:
        logger.error(f"Merged configuration invalid, falling back to defaults: {e}")
        config = WisdomConfig()

    return LoadedConfig(config=config, paths=paths)


def save_config(updates: dict[str, Any], path: Path) -> None:
    """Merge ``updates`` into the JSON config at ``path``.

    A value of None removes the key from the file.

    Raises:
        ConfigException: If the file cannot be written or the result is invalid.
    """
    existing = _load_config_file(path) or {}
    merged = {**existing, **updates}
    merged = {k: v for k, v in merged.items() if v is not None}

    try:
        WisdomConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigException(f"Refusing to save invalid configuration: {e}", path=str(path)) from e

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(merged, f, indent=2)
    except OSError as e:
        raise ConfigException(f"Cannot write configuration: {e}", path=str(path)) from e

    logger.debug(f"Saved configuration keys {sorted(updates)} to {path}")


def save_project_config(updates: dict[str, Any], project_root: Path | None = None) -> Path:
    """Save to <project_root>/.wisdom/config.json and return the path."""
    root = project_root or find_project_root() or Path.cwd()
    path = root / PROJECT_CONFIG_FILE
    save_config(updates, path)
    return path


def save_global_config(updates: dict[str, Any]) -> Path:
    """Save to the global config file and return the path."""
    path = global_config_dir() / GLOBAL_CONFIG_FILE
    save_config(updates, path)
    return path


def preferred_config_path(paths: ConfigPaths) -> Path:
    """Project config when inside a project, otherwise the global file."""
    return paths.project_config or paths.global_config


def has_agent(config: WisdomConfig) -> bool:
    """True when both an agent UUID and a private key are configured."""
    return bool(config.agent_uuid and config.private_key)
