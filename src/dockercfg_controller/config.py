"""Controller configuration loading.

This module reads ControllerOptions from an optional YAML file and
merges command-line overrides on top of it.
"""

import dataclasses
from pathlib import Path
from typing import Any

import yaml

from dockercfg_controller.exceptions import ConfigError
from dockercfg_controller.models import ControllerOptions

# YAML keys accepted in the configuration file, mapped to option fields
_FILE_KEYS: dict[str, str] = {
    "dockerURL": "docker_url",
    "resyncSeconds": "resync_seconds",
    "tokenWaitInterval": "token_wait_interval",
    "tokenWaitAttempts": "token_wait_attempts",
    "jitterFactor": "jitter_factor",
}


def parse_config_file(config_path: str | Path) -> dict[str, Any]:
    """Parse a YAML configuration file into option field values.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Mapping of ControllerOptions field names to values. An empty file
        yields an empty mapping.

    Raises:
        ConfigError: If the file does not exist, contains malformed YAML,
            is not a mapping, or contains unknown keys.

    """
    try:
        with open(config_path) as stream:
            document = yaml.safe_load(stream)
    except FileNotFoundError as err:
        raise ConfigError(f"Configuration file '{config_path}' does not exist") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"Configuration file '{config_path}' contains malformed YAML: {err}") from err

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigError(f"Configuration file '{config_path}' does not contain a YAML mapping")

    unknown = sorted(set(document) - set(_FILE_KEYS))
    if unknown:
        raise ConfigError(f"Configuration file '{config_path}' contains unknown keys: {', '.join(unknown)}")

    return {_FILE_KEYS[key]: value for key, value in document.items()}


def validate_options(options: ControllerOptions) -> ControllerOptions:
    """Check option types and ranges.

    Raises:
        ConfigError: If a value is invalid.

    """
    if not isinstance(options.docker_url, str):
        raise ConfigError("dockerURL must be a string")
    for name in ("resync_seconds", "token_wait_attempts"):
        value = getattr(options, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{name} must be an integer")
    for name in ("token_wait_interval", "jitter_factor"):
        value = getattr(options, name)
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ConfigError(f"{name} must be a number")

    if options.resync_seconds < 0:
        raise ConfigError("resync_seconds cannot be negative")
    if options.token_wait_attempts < 1:
        raise ConfigError("token_wait_attempts must be at least 1")
    if options.token_wait_interval < 0:
        raise ConfigError("token_wait_interval cannot be negative")
    if options.jitter_factor < 0:
        raise ConfigError("jitter_factor cannot be negative")
    return options


def load_options(config_path: str | Path | None = None, **overrides: Any) -> ControllerOptions:
    """Build ControllerOptions from defaults, a config file and overrides.

    Overrides whose value is None are ignored, so unset command-line
    options fall through to the file or the defaults.

    Args:
        config_path: Optional path to a YAML configuration file.
        **overrides: ControllerOptions field values taking precedence.

    Returns:
        The validated options.

    Raises:
        ConfigError: If the file or any value is invalid.

    """
    values: dict[str, Any] = parse_config_file(config_path) if config_path else {}

    field_names = {field.name for field in dataclasses.fields(ControllerOptions)}
    for key, value in overrides.items():
        if key not in field_names:
            raise ConfigError(f"Unknown option: {key}")
        if value is not None:
            values[key] = value

    return validate_options(ControllerOptions(**values))
