"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import ByggrefConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: ByggrefConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/byggref/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "byggref" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .byggref.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".byggref.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested
    dicts are merged, not replaced.

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {'a': 1, 'b': {'x': 10, 'y': 30, 'z': 40}, 'c': 3}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to a broken file
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _section(result: dict[str, Any], name: str) -> dict[str, Any]:
    if not isinstance(result.get(name), dict):
        result[name] = {}
    else:
        result[name] = dict(result[name])
    section: dict[str, Any] = result[name]
    return section


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        BYGGREF_STORAGE_BACKEND - overrides storage.backend
        BYGGREF_STORAGE_PATH - overrides storage.path
        BYGGREF_MAX_ATTEMPTS - overrides refid.max_attempts
        BYGGREF_WORKSPACE_ID - overrides refid.workspace_id

    Invalid values are ignored with a warning.

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if backend := os.environ.get("BYGGREF_STORAGE_BACKEND"):
        backend = backend.strip().lower()
        if backend in ("json", "sqlite", "memory"):
            _section(result, "storage")["backend"] = backend
        else:
            logger.warning("Invalid BYGGREF_STORAGE_BACKEND value '%s', ignoring", backend)

    if path := os.environ.get("BYGGREF_STORAGE_PATH"):
        _section(result, "storage")["path"] = path

    if attempts_str := os.environ.get("BYGGREF_MAX_ATTEMPTS"):
        try:
            attempts = int(attempts_str)
            if attempts < 1:
                logger.warning(
                    "BYGGREF_MAX_ATTEMPTS must be >= 1, got %d, ignoring", attempts
                )
            else:
                _section(result, "refid")["max_attempts"] = attempts
        except ValueError:
            logger.warning("Invalid BYGGREF_MAX_ATTEMPTS value '%s', ignoring", attempts_str)

    if workspace := os.environ.get("BYGGREF_WORKSPACE_ID"):
        _section(result, "refid")["workspace_id"] = workspace

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "storage": {"backend": "json"},
        "refid": {"max_attempts": 24},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> ByggrefConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (BYGGREF_*)
        2. Project config (.byggref.json)
        3. User config (~/.config/byggref/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .byggref.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated ByggrefConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = ByggrefConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
