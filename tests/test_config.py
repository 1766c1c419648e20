"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from pollfile.config import (
    Config,
    WatchConfig,
    default_state_path,
    get_config,
    get_config_paths,
    get_project_config_path,
    get_user_config_path,
    load_config,
    merge_configs,
    reset_config,
)


class TestMergeConfigs:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        """Test that later values replace earlier ones."""
        assert merge_configs({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Test that nested dicts are recursively merged."""
        result = merge_configs(
            {"watch": {"block_size": 1024, "sample_count": 64}},
            {"watch": {"sample_count": 128}},
        )
        assert result == {"watch": {"block_size": 1024, "sample_count": 128}}

    def test_none_does_not_override(self) -> None:
        """Test that None leaves earlier values alone."""
        assert merge_configs({"watch": {"block_size": 1024}}, {"watch": {"block_size": None}}) == {
            "watch": {"block_size": 1024}
        }

    def test_none_dropped_in_new_section(self) -> None:
        """Test None values are dropped even when no earlier config has the section."""
        assert merge_configs({}, {"watch": {"block_size": None, "sample_count": 8}}) == {
            "watch": {"sample_count": 8}
        }
        assert merge_configs({"watch": {"block_size": None}}) == {"watch": {}}

    def test_new_section_is_copied(self) -> None:
        section = {"block_size": 1}
        result = merge_configs({}, {"watch": section})
        result["watch"]["block_size"] = 2
        assert section == {"block_size": 1}

    def test_list_replaced_not_merged(self) -> None:
        assert merge_configs({"items": [1, 2, 3]}, {"items": [4, 5]}) == {"items": [4, 5]}

    def test_inputs_not_mutated(self) -> None:
        base = {"watch": {"block_size": 1}}
        merge_configs(base, {"watch": {"block_size": 2}})
        assert base == {"watch": {"block_size": 1}}


class TestConfigPaths:
    """Test platform-aware path resolution."""

    def test_windows_user_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("APPDATA", "C:\\Users\\Test\\AppData\\Roaming")

        path = get_user_config_path()
        assert path is not None
        assert "AppData" in str(path)
        assert "pollfile" in str(path)

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")

        assert get_user_config_path() == Path("/home/test/.config-custom/pollfile/config.yaml")

    def test_unix_user_path_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

        path = get_user_config_path()
        assert path is not None
        assert path.parts[-3:] == (".config", "pollfile", "config.yaml")

    def test_project_config_path(self) -> None:
        assert get_project_config_path("/home/user/proj") == Path("/home/user/proj/.pollfile.yaml")

    def test_paths_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test user config comes before project config."""
        monkeypatch.setattr(sys, "platform", "linux")
        paths = get_config_paths("/project")
        assert len(paths) == 2
        assert paths[-1] == Path("/project/.pollfile.yaml")

    def test_state_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_STATE_HOME", "/home/test/state")
        assert default_state_path() == Path("/home/test/state/pollfile/state.yaml")


class TestConfigLoading:
    """Test configuration loading."""

    def test_defaults(self, tmp_path: Path) -> None:
        """Test defaults when no file exists."""
        config = load_config(cwd=tmp_path)
        assert isinstance(config, Config)
        assert config.watch == WatchConfig()
        assert config.watch.block_size == 4096
        assert config.watch.sample_count == 64
        assert config.watch.watch_interval_ms == 500
        assert config.watch.max_delta_ms == 60_000
        assert config.watch.idle_check_ms == 1000

    def test_project_file(self, tmp_path: Path) -> None:
        """Test loading the project config file."""
        (tmp_path / ".pollfile.yaml").write_text(
            """
watch:
  block_size: 8192
  max_delta_ms: 120000
logging:
  level: debug
"""
        )
        config = load_config(cwd=tmp_path)
        assert config.watch.block_size == 8192
        assert config.watch.max_delta_ms == 120_000
        assert config.watch.sample_count == 64
        assert config.logging.level == "debug"

    def test_priority(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test project < explicit file < env < overrides."""
        (tmp_path / ".pollfile.yaml").write_text(
            "watch:\n  block_size: 2048\n  sample_count: 128\n  watch_interval_ms: 200\n"
        )
        explicit = tmp_path / "explicit.yaml"
        explicit.write_text("watch:\n  sample_count: 256\n  watch_interval_ms: 300\n")
        monkeypatch.setenv("POLLFILE_INTERVAL_MS", "400")

        config = load_config(
            config_path=explicit,
            cwd=tmp_path,
            overrides={"watch": {"max_delta_ms": 5000, "block_size": None}},
        )
        assert config.watch.block_size == 2048
        assert config.watch.sample_count == 256
        assert config.watch.watch_interval_ms == 400
        assert config.watch.max_delta_ms == 5000

    def test_user_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
        user_file = tmp_path / "cfg" / "pollfile" / "config.yaml"
        user_file.parent.mkdir(parents=True)
        user_file.write_text("state:\n  file: /tmp/pollfile-state.yaml\n")

        config = load_config(cwd=tmp_path)
        assert config.state.file == "/tmp/pollfile-state.yaml"

    def test_unset_overrides_keep_defaults(self, tmp_path: Path) -> None:
        """Test unset command-line flags leave defaults alone when no file sets them."""
        config = load_config(
            cwd=tmp_path,
            overrides={"watch": {"block_size": None, "sample_count": None, "max_delta_ms": 5000}},
        )
        assert config.watch.block_size == 4096
        assert config.watch.sample_count == 64
        assert config.watch.max_delta_ms == 5000

    def test_invalid_env_ignored(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("POLLFILE_BLOCK_SIZE", "large")
        config = load_config(cwd=tmp_path)
        assert config.watch.block_size == 4096

    def test_log_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POLLFILE_LOG", "/tmp/pollfile.log")
        assert load_config(cwd=tmp_path).logging.file == "/tmp/pollfile.log"

    def test_invalid_yaml_uses_defaults(self, tmp_path: Path) -> None:
        (tmp_path / ".pollfile.yaml").write_text("invalid: yaml: :")
        assert load_config(cwd=tmp_path).watch == WatchConfig()

    def test_non_positive_rejected(self, tmp_path: Path) -> None:
        """Test invalid watch values fail loudly."""
        (tmp_path / ".pollfile.yaml").write_text("watch:\n  sample_count: 0\n")
        with pytest.raises(ValueError, match="sample_count"):
            load_config(cwd=tmp_path)

    def test_extra_fields_preserved(self, tmp_path: Path) -> None:
        (tmp_path / ".pollfile.yaml").write_text("custom_field: custom_value\n")
        assert load_config(cwd=tmp_path).extra == {"custom_field": "custom_value"}


class TestWatchConfigValidation:
    """Tests for WatchConfig.validate."""

    @pytest.mark.parametrize("field", ["block_size", "sample_count", "watch_interval_ms", "max_delta_ms", "idle_check_ms"])
    def test_rejects_zero(self, field: str) -> None:
        config = WatchConfig(**{field: 0})
        with pytest.raises(ValueError, match=field):
            config.validate()

    def test_rejects_bool(self) -> None:
        with pytest.raises(ValueError):
            WatchConfig(block_size=True).validate()  # type: ignore[arg-type]

    def test_unusual_values_warn(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test values outside the recommended range only log a warning."""
        with caplog.at_level("WARNING", logger="pollfile"):
            config = WatchConfig(watch_interval_ms=10).validate()
        assert config.watch_interval_ms == 10
        assert "watch_interval_ms" in caplog.text


class TestConfigCaching:
    """Test config caching behavior."""

    @pytest.fixture(autouse=True)
    def reset_global_config(self) -> None:
        reset_config()

    def test_get_config_caches(self) -> None:
        assert get_config() is get_config()

    def test_reset_clears_cache(self) -> None:
        config1 = get_config()
        reset_config()
        assert get_config() is not config1

    def test_scoped_load_not_cached(self, tmp_path: Path) -> None:
        """Test that a cwd-specific load does not replace the global config."""
        scoped = load_config(cwd=tmp_path)
        assert get_config() is not scoped
