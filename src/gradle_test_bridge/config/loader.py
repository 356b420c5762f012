"""Configuration file loading.

Settings come from ``.gradle-test-bridge.yml`` in the project root (or an
explicit path), with CLI overrides merged on top.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from gradle_test_bridge.config.models import BridgeConfig
from gradle_test_bridge.core.errors import ConfigError
from gradle_test_bridge.core.logging import get_logger

LOGGER = get_logger(__name__)

CONFIG_FILE_NAMES = (".gradle-test-bridge.yml", ".gradle-test-bridge.yaml")


def deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``.

    Values from ``overrides`` win; nested mappings are merged key by key.
    """
    result = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def find_config_file(project_root: Path) -> Optional[Path]:
    for name in CONFIG_FILE_NAMES:
        candidate = project_root / name
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> Dict[str, Any]:
    """Read a YAML config file into a mapping.

    Raises:
        ConfigError: If the file is unreadable or not a mapping.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(
    project_root: Optional[Path] = None,
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> BridgeConfig:
    """Load configuration for a project.

    Args:
        project_root: Directory searched for a config file.
        config_path: Explicit config file; must exist when given.
        overrides: Values that take precedence over the file (CLI flags).

    Returns:
        Validated BridgeConfig.
    """
    data: Dict[str, Any] = {}

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        data = read_config_file(config_path)
        LOGGER.debug(f"Loaded config from {config_path}")
    elif project_root is not None:
        found = find_config_file(project_root)
        if found:
            data = read_config_file(found)
            LOGGER.debug(f"Loaded config from {found}")

    if overrides:
        data = deep_merge(data, overrides)

    return BridgeConfig.from_dict(data)
