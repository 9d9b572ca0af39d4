"""Runtime settings for phaser.

Settings are resolved in order, later sources winning:

1. Defaults from ``phaser/config/defaults.yaml``
2. An optional YAML file passed to ``load_settings``
3. ``PHASER_*`` environment variables (a ``.env`` file is loaded first)

Usage:
    settings = load_settings(Path("phaser.yaml"))
    storage = Storage(settings.data_dir, settings.database_name, settings.lock_timeout)
"""

from __future__ import annotations

import logging
import os
import socket
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from phaser.errors import SettingsError

logger = logging.getLogger(__name__)

DEFAULTS_PATH = Path(__file__).parent / "config" / "defaults.yaml"
ENV_PREFIX = "PHASER_"

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_lock_owner() -> str:
    """Lock owner name unique to this host and process."""
    return f"{socket.gethostname()}:{os.getpid()}"


class PhaserSettings(BaseModel):
    """Resolved configuration for one phaser process."""

    model_config = ConfigDict(frozen=True)

    data_dir: Path = Path("data")
    database_name: str = "phaser.db"
    lock_owner: str = ""
    lock_timeout: timedelta = timedelta(minutes=30)
    log_level: str = "DEBUG"
    console_level: str = "WARNING"

    @field_validator("log_level", "console_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LEVEL_NAMES:
            raise ValueError(f"unknown log level '{value}'")
        return level

    @field_validator("lock_timeout", mode="before")
    @classmethod
    def _seconds_string(cls, value: Any) -> Any:
        # Environment values arrive as text
        if isinstance(value, str) and value.replace(".", "", 1).isdigit():
            return float(value)
        return value

    @field_validator("lock_timeout")
    @classmethod
    def _positive_timeout(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("lock_timeout must be positive")
        return value

    @property
    def resolved_lock_owner(self) -> str:
        return self.lock_owner or default_lock_owner()

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    @property
    def console_level_value(self) -> int:
        return logging.getLevelName(self.console_level)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a mapping")
    return data.get("phaser", data)


def _read_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field_name in PhaserSettings.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if raw is not None:
            values[field_name] = raw
    return values


def load_settings(path: Path | None = None) -> PhaserSettings:
    """Load settings from defaults, an optional YAML file and the environment.

    Args:
        path: YAML settings file. A missing file is an error.

    Returns:
        Resolved settings

    Raises:
        SettingsError: If a file cannot be read or a value is invalid
    """
    load_dotenv(find_dotenv(usecwd=True))

    values: dict[str, Any] = {}
    if DEFAULTS_PATH.exists():
        values.update(_read_yaml(DEFAULTS_PATH))

    if path is not None:
        if not path.exists():
            raise SettingsError(f"Settings file not found: {path}")
        values.update(_read_yaml(path))
        logger.debug(f"Loaded settings from {path}")

    values.update(_read_env())

    try:
        return PhaserSettings(**values)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings: {e}") from e
