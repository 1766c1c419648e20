"""Platform-aware config and state file locations.

- Windows: %APPDATA%\\pollfile\\ (config), %LOCALAPPDATA%\\pollfile\\ (state)
- Unix: $XDG_CONFIG_HOME/pollfile/ or ~/.config/pollfile/ (config),
  $XDG_STATE_HOME/pollfile/ or ~/.local/state/pollfile/ (state)
- Project: ./.pollfile.yaml
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

APP_NAME = "pollfile"
CONFIG_FILENAME = "config.yaml"
STATE_FILENAME = "state.yaml"
PROJECT_FILENAME = ".pollfile.yaml"


def get_user_config_path() -> Path | None:
    """Get the user-level config file path (may not exist)."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME / CONFIG_FILENAME
        return None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME / CONFIG_FILENAME
    return Path.home() / ".config" / APP_NAME / CONFIG_FILENAME


def get_project_config_path(cwd: str | Path | None = None) -> Path:
    """Get the project-level config file path (may not exist)."""
    return Path(cwd or Path.cwd()) / PROJECT_FILENAME


def get_config_paths(cwd: str | Path | None = None) -> list[Path]:
    """Get config paths in priority order (lowest to highest)."""
    paths: list[Path] = []

    user_path = get_user_config_path()
    if user_path:
        paths.append(user_path)

    paths.append(get_project_config_path(cwd))
    return paths


def default_state_path() -> Path:
    """Get the default file that remembers the last watched resource."""
    if sys.platform == "win32":
        local_app_data = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
        if local_app_data:
            return Path(local_app_data) / APP_NAME / STATE_FILENAME
        return Path.home() / f".{APP_NAME}" / STATE_FILENAME

    xdg_state = os.environ.get("XDG_STATE_HOME")
    if xdg_state:
        return Path(xdg_state) / APP_NAME / STATE_FILENAME
    return Path.home() / ".local" / "state" / APP_NAME / STATE_FILENAME
