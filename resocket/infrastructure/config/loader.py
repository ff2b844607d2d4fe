"""
Configuration file and environment loading.

Settings come from an optional YAML or JSON file, then ``RESOCKET_*``
environment variables on top, and are validated by ``ApplicationConfig``.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml

from ...core.exceptions import ConfigurationError
from .models import ApplicationConfig


def _parse_bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes', 'on', 'enabled')


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


# Environment suffix -> (dotted config path, converter)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "ADDRESS": ("address", str),
    "SUBPROTOCOLS": ("subprotocols", _parse_list),
    "RECONNECT_DELAY": ("reconnect.reconnect_delay", float),
    "OPEN_TIMEOUT": ("reconnect.open_timeout", float),
    "DEBUG": ("reconnect.debug", _parse_bool),
    "DEBUG_ALL": ("diagnostics.debug_all", _parse_bool),
    "AUTH_ENABLED": ("authorization.enabled", _parse_bool),
    "AUTH_URL": ("authorization.url", str),
    "AUTH_METHOD": ("authorization.method", str),
    "AUTH_TIMEOUT": ("authorization.timeout", float),
    "LOG_LEVEL": ("logging.level", str),
    "LOG_DIR": ("logging.log_directory", str),
}

# Suffix/format name -> (reader, writer, parse error type, label)
_FORMATS: Dict[str, Tuple[Callable[[Any], Any], Callable[[Any, Any], None], type, str]] = {
    "yaml": (
        yaml.safe_load,
        lambda data, f: yaml.safe_dump(data, f, default_flow_style=False, indent=2),
        yaml.YAMLError,
        "YAML",
    ),
    "json": (
        json.load,
        lambda data, f: json.dump(data, f, indent=2),
        json.JSONDecodeError,
        "JSON",
    ),
}
_SUFFIXES = {".yaml": "yaml", ".yml": "yaml", ".json": "json"}


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Loads and saves ``ApplicationConfig`` files."""

    def __init__(self, env_prefix: str = "RESOCKET_") -> None:
        self._env_prefix = env_prefix

    def load_config(self, config_file: Optional[str] = None) -> ApplicationConfig:
        """
        Load configuration from ``config_file`` (if given) and the environment.

        Raises:
            FileNotFoundError: If ``config_file`` does not exist.
            ConfigurationError: On unreadable, unparsable or invalid settings.
        """
        data = self._read(config_file) if config_file else {}
        data = merge_dicts(data, self._environment_overrides())

        config = ApplicationConfig.from_dict(data)
        config.config_file_path = config_file
        return config

    def save_config(self, config: ApplicationConfig, file_path: str, format: str = "yaml") -> None:
        """Write ``config`` to ``file_path`` as YAML or JSON."""
        fmt = format.lower()
        if fmt not in _FORMATS:
            raise ConfigurationError(f"Unsupported format: {format}")

        data = config.to_dict()
        data.pop("config_file_path", None)
        writer = _FORMATS[fmt][1]
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                writer(data, f)
        except OSError as e:
            raise ConfigurationError(f"Error writing {file_path}: {e}")

    def _read(self, file_path: str) -> Dict[str, Any]:
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        fmt = _SUFFIXES.get(path.suffix.lower())
        if fmt is None:
            raise ConfigurationError(f"Unsupported configuration file format: {path.suffix}")

        reader, _, parse_error, label = _FORMATS[fmt]
        try:
            with path.open('r', encoding='utf-8') as f:
                data = reader(f)
        except parse_error as e:
            raise ConfigurationError(f"Invalid {label} in {file_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading {file_path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Top level of {file_path} must be a mapping")
        return data

    def _environment_overrides(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for suffix, (dotted, convert) in ENV_OVERRIDES.items():
            name = f"{self._env_prefix}{suffix}"
            raw = os.getenv(name)
            if raw is None:
                continue
            try:
                value = convert(raw)
            except (ValueError, TypeError) as e:
                raise ConfigurationError(f"Invalid value for {name}: {raw} ({e})")

            *parents, leaf = dotted.split('.')
            target = overrides
            for key in parents:
                target = target.setdefault(key, {})
            target[leaf] = value
        return overrides
