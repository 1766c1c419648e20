"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from pollfile.config import reset_config
from pollfile.logging import reset_logging

pytest_plugins = ("pytest_asyncio",)

_ENV_VARS = (
    "POLLFILE_LOG",
    "POLLFILE_BLOCK_SIZE",
    "POLLFILE_SAMPLE_COUNT",
    "POLLFILE_INTERVAL_MS",
    "POLLFILE_MAX_DELTA_MS",
    "POLLFILE_STATE",
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch):
    """Keep the user's config, state and POLLFILE_* variables out of tests."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(home / ".local" / "state"))
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()
    reset_logging()
