"""Configuration schema dataclasses for pollfile.

All fields have defaults so partial YAML files merge cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pollfile.logging import get_logger

log = get_logger("config")

# (min, max) of the ranges the tool is tuned for; values outside are
# accepted but logged.
RECOMMENDED_RANGES: dict[str, tuple[int, int]] = {
    "block_size": (0x400, 0x4000),
    "sample_count": (0x40, 0x400),
    "watch_interval_ms": (100, 60_000),
    "max_delta_ms": (1_000, 600_000),
}


@dataclass
class WatchConfig:
    """Parameters of one watch session.

    Example config.yaml:
        watch:
          block_size: 4096
          sample_count: 64
          watch_interval_ms: 500
          max_delta_ms: 60000
    """

    block_size: int = 0x1000  # Bytes per sample block
    sample_count: int = 0x40  # Target number of sample blocks
    watch_interval_ms: int = 500  # Poll period
    max_delta_ms: int = 60_000  # Stop after this long without a change
    idle_check_ms: int = 1_000  # Period of the idle-timeout check

    def validate(self) -> WatchConfig:
        """Reject non-positive values, warn about unusual ones.

        Returns:
            self, for chaining.

        Raises:
            ValueError: A field is not a positive integer.
        """
        for name in (
            "block_size",
            "sample_count",
            "watch_interval_ms",
            "max_delta_ms",
            "idle_check_ms",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"watch.{name} must be a positive integer, got {value!r}")

        for name, (low, high) in RECOMMENDED_RANGES.items():
            value = getattr(self, name)
            if not low <= value <= high:
                log.warning(
                    "watch.%s=%d is outside the recommended range %d-%d", name, value, low, high
                )
        return self


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class StateConfig:
    """Where the last selected resource is remembered."""

    file: str | None = None  # Defaults to the platform state directory


@dataclass
class Config:
    """Root configuration object."""

    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    state: StateConfig = field(default_factory=StateConfig)

    # Unknown top-level sections, kept for forward compatibility
    extra: dict[str, Any] = field(default_factory=dict)
