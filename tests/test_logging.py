"""Tests for logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

from pollfile.config import LoggingConfig
from pollfile.logging import TRACE, get_logger, resolve_level, setup_logging


class TestResolveLevel:
    """Tests for level resolution."""

    def test_default_info(self) -> None:
        assert resolve_level(None) == logging.INFO
        assert resolve_level(LoggingConfig()) == logging.INFO

    def test_level_name(self) -> None:
        assert resolve_level(LoggingConfig(level="debug")) == logging.DEBUG
        assert resolve_level(LoggingConfig(level="bogus")) == logging.INFO

    def test_verbose_wins(self) -> None:
        """Test verbose overrides level."""
        assert resolve_level(LoggingConfig(level="error", verbose=3)) == logging.DEBUG
        assert resolve_level(LoggingConfig(verbose=0)) == logging.ERROR
        assert resolve_level(LoggingConfig(verbose=9)) == TRACE


class TestSetupLogging:
    """Tests for handler installation."""

    def test_file_handler(self, tmp_path: Path) -> None:
        """Test messages reach the configured log file in lowercase-level format."""
        log_file = tmp_path / "pollfile.log"
        setup_logging(LoggingConfig(level="info", file=str(log_file)))

        get_logger("watching").info("hello %s", "world")
        for handler in get_logger().handlers:
            handler.flush()

        text = log_file.read_text()
        assert "info: hello world" in text

    def test_second_call_is_noop(self, tmp_path: Path) -> None:
        setup_logging(LoggingConfig(file=str(tmp_path / "a.log")))
        count = len(get_logger().handlers)
        setup_logging(LoggingConfig(file=str(tmp_path / "b.log")))
        assert len(get_logger().handlers) == count

    def test_child_logger_names(self) -> None:
        assert get_logger().name == "pollfile"
        assert get_logger("storage").name == "pollfile.storage"
