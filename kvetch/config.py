"""
Settings for kvetch, optionally loaded from a YAML file.

Lookup order for ``get_settings()``: the path in ``$KVETCH_CONFIG``, then
``./kvetch.yaml``, then built-in defaults.
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CONFIG_ENV_VAR = "KVETCH_CONFIG"
DEFAULT_CONFIG_FILE = "kvetch.yaml"


class SettingsError(ValueError):
    """Raised when a settings file cannot be read or fails validation"""


class KvetchSettings(BaseModel):
    """Engine-wide settings"""
    model_config = ConfigDict(extra="forbid")

    debug: bool = Field(default=True, description="Append expected/actual values to comparison failures")
    log_level: str = Field(default="WARNING", description="Level used by setup_logging")
    log_file: Optional[str] = Field(default=None, description="Optional file to also write logs to")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level '{value}'")
        return level


def validate_settings(data: Optional[Dict[str, Any]]) -> KvetchSettings:
    """
    Validate raw settings data.

    Raises:
        SettingsError: If the data is invalid, with one line per failing field
    """
    try:
        return KvetchSettings(**(data or {}))
    except ValidationError as e:
        error_details = []
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            error_details.append(f"Field '{field}': {error['msg']}")
        raise SettingsError("Settings validation failed:\n" + "\n".join(error_details)) from e


def load_settings(path: Union[str, Path]) -> KvetchSettings:
    """
    Load and validate a YAML settings file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        SettingsError: If the file is not valid YAML or fails validation
    """
    settings_path = Path(path)
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SettingsError(f"Settings file {settings_path} is not valid YAML: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise SettingsError(f"Settings file {settings_path} must contain a mapping")

    return validate_settings(data)


def get_settings() -> KvetchSettings:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return load_settings(env_path)

    default_path = Path(DEFAULT_CONFIG_FILE)
    if default_path.exists():
        return load_settings(default_path)

    return KvetchSettings()
