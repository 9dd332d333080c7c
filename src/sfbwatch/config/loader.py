"""
Configuration file loading.

Reads ``config.yaml`` from the project directory, merges an optional
``config.{env}.yaml`` on top, then resolves environment variables.
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from sfbwatch.config.resolver import resolve_config
from sfbwatch.exceptions import ConfigurationError

CONFIG_FILE_NAME = "config.yaml"


class Config:
    """sfbwatch configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any]):
        self.data = data
        self.monitor = data.get("monitor") or {}
        self.storage = data.get("storage") or {}
        self.logging = data.get("logging") or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (``monitor.watch_path``)."""
        value: Any = self.data
        for k in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        if "." in key:
            return self.get(key)
        if key in self.data:
            return self.data[key]
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        value: Any = self.data
        for k in key.split("."):
            if not isinstance(value, dict) or k not in value:
                return False
            value = value[k]
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def validate(self) -> None:
        """
        Validate top-level structure.

        Raises:
            ConfigurationError: A known section is not a mapping
        """
        errors = []
        for section in ("monitor", "storage", "logging"):
            value = self.data.get(section)
            if value is not None and not isinstance(value, dict):
                errors.append(f"Configuration '{section}' must be a mapping, got {type(value).__name__}")
        if errors:
            raise ConfigurationError("\n".join(errors))


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        location = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
        raise ConfigurationError(
            f"Error parsing {path.name}{location}:\n"
            f"  {e}\n"
            f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes",
            details={"path": str(path)},
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}", details={"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}", details={"path": str(path)}
        )
    return data


def load_config(project_path: Path | None = None, env: str | None = None, required: bool = True) -> Config:
    """
    Load sfbwatch configuration.

    Args:
        project_path: Path to project root (default: current directory)
        env: Environment name (dev, staging, prod)
        required: Raise when ``config.yaml`` is missing; otherwise start
            from an empty configuration

    Returns:
        Config instance with merged configuration

    Raises:
        ConfigurationError: Missing (when required) or malformed config
    """
    if project_path is None:
        project_path = Path.cwd()

    base_config_path = project_path / CONFIG_FILE_NAME
    if base_config_path.is_file():
        config_data = _read_yaml(base_config_path)
    elif required:
        raise ConfigurationError(
            f"Configuration file not found: {base_config_path}\n"
            f"  Suggestion: Create a {CONFIG_FILE_NAME} file in your project root",
            details={"path": str(base_config_path)},
        )
    else:
        config_data = {}

    if env:
        env_config_path = project_path / f"config.{env}.yaml"
        if env_config_path.is_file():
            _merge_dict(config_data, _read_yaml(env_config_path))

    config = Config(resolve_config(config_data, env or "dev"))
    config.validate()
    return config


def _merge_dict(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
