"""Configuration management for pollfile.

YAML-based configuration cascading from the user config to a project file,
an explicit ``--config`` file, POLLFILE_* environment variables and finally
command-line flags.

Example usage:
    from pollfile.config import load_config

    config = load_config(overrides={"watch": {"watch_interval_ms": 250}})
    print(config.watch.block_size)
"""

from pollfile.config.loader import (
    dict_to_config,
    get_config,
    load_config,
    merge_configs,
    reset_config,
)
from pollfile.config.paths import (
    default_state_path,
    get_config_paths,
    get_project_config_path,
    get_user_config_path,
)
from pollfile.config.schema import (
    Config,
    LoggingConfig,
    StateConfig,
    WatchConfig,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    "dict_to_config",
    "merge_configs",
    # Schema types
    "WatchConfig",
    "LoggingConfig",
    "StateConfig",
    # Path utilities
    "default_state_path",
    "get_config_paths",
    "get_project_config_path",
    "get_user_config_path",
]
