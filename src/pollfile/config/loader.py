"""Configuration loading and caching.

Handles:
- YAML file parsing
- Cascading user -> project -> explicit file -> environment -> overrides
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from pollfile.config.paths import get_config_paths
from pollfile.config.schema import Config, LoggingConfig, StateConfig, WatchConfig

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("pollfile.config")

_cached_config: Config | None = None

# Environment variable -> (section, key, converter)
_ENV_KEYS: dict[str, tuple[str, str, type]] = {
    "POLLFILE_LOG": ("logging", "file", str),
    "POLLFILE_BLOCK_SIZE": ("watch", "block_size", int),
    "POLLFILE_SAMPLE_COUNT": ("watch", "sample_count", int),
    "POLLFILE_INTERVAL_MS": ("watch", "watch_interval_ms", int),
    "POLLFILE_MAX_DELTA_MS": ("watch", "max_delta_ms", int),
    "POLLFILE_STATE": ("state", "file", str),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge config dicts left to right.

    Nested dicts merge recursively, lists and scalars are replaced, and
    ``None`` values are dropped at every level.
    """
    result: dict[str, Any] = {}
    for config in configs:
        for key, value in (config or {}).items():
            if value is None:
                continue
            current = result.get(key)
            if isinstance(value, dict):
                base = current if isinstance(current, dict) else {}
                result[key] = merge_configs(base, value)
            else:
                result[key] = value
    return result


def env_overrides() -> dict[str, Any]:
    """Build a config dict from POLLFILE_* environment variables."""
    overrides: dict[str, Any] = {}

    for var, (section, key, convert) in _ENV_KEYS.items():
        raw = os.environ.get(var)
        if not raw:
            continue
        try:
            value = convert(raw)
        except ValueError:
            _log.warning("Ignoring %s=%r: expected %s", var, raw, convert.__name__)
            continue
        overrides.setdefault(section, {})[key] = value

    return overrides


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to a typed Config."""
    defaults = WatchConfig()
    watch_data = _section(data, "watch")
    watch = WatchConfig(
        block_size=watch_data.get("block_size", defaults.block_size),
        sample_count=watch_data.get("sample_count", defaults.sample_count),
        watch_interval_ms=watch_data.get("watch_interval_ms", defaults.watch_interval_ms),
        max_delta_ms=watch_data.get("max_delta_ms", defaults.max_delta_ms),
        idle_check_ms=watch_data.get("idle_check_ms", defaults.idle_check_ms),
    )

    log_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    state = StateConfig(file=_section(data, "state").get("file"))

    known_keys = {"watch", "logging", "state"}
    extra = {k: v for k, v in data.items() if k not in known_keys}

    return Config(watch=watch, logging=logging_config, state=state, extra=extra)


def load_config(
    config_path: Path | None = None,
    cwd: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
    reload: bool = False,
) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. ``overrides`` (command-line flags)
    2. Environment variables
    3. ``config_path`` if given
    4. Project config (./.pollfile.yaml)
    5. User config

    Only the plain call (no arguments) is cached.

    Raises:
        ValueError: The merged watch section is invalid.
    """
    global _cached_config

    plain = config_path is None and cwd is None and overrides is None
    if plain and _cached_config is not None and not reload:
        return _cached_config

    configs: list[dict[str, Any]] = []
    for path in get_config_paths(cwd):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    if config_path is not None:
        if not config_path.exists():
            _log.warning("Config file %s does not exist", config_path)
        configs.append(load_yaml_file(config_path))

    configs.append(env_overrides())
    if overrides:
        configs.append(overrides)

    config = dict_to_config(merge_configs(*configs))
    config.watch.validate()

    if plain:
        _cached_config = config
    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config. Useful for testing."""
    global _cached_config
    _cached_config = None
