"""Watching a resource over time.

WatchController runs the poll and idle-timeout timers for one resource;
WatchHost adds resource selection and remembers the last watched file.
"""

from pollfile.watching.controller import (
    TickResult,
    WatchController,
    WatchEvent,
    WatchEventKind,
    WatchListener,
    WatchSession,
    WatchState,
    monotonic_ms,
)
from pollfile.watching.host import WatchHost

__all__ = [
    "TickResult",
    "WatchController",
    "WatchEvent",
    "WatchEventKind",
    "WatchHost",
    "WatchListener",
    "WatchSession",
    "WatchState",
    "monotonic_ms",
]
