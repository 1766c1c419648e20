"""pollfile: cheap, probabilistic change detection for large files."""

__version__ = "0.1.0"

# Public API
from pollfile.comparator import Region, Sample, SampledComparator
from pollfile.config import Config, WatchConfig, load_config
from pollfile.errors import (
    AlreadyWatchingError,
    NoResourceSelectedError,
    NotInitializedError,
    PermissionDeniedError,
    PollFileError,
    ReadFailureError,
    ResourceError,
)
from pollfile.resource import FileHandle, MemoryHandle, MemorySnapshot
from pollfile.storage import Initial, Lazy, MemoryStore, PersistedValue, YamlStore
from pollfile.watching import (
    TickResult,
    WatchController,
    WatchEvent,
    WatchEventKind,
    WatchHost,
    WatchState,
)

__all__ = [
    # Comparator
    "Region",
    "Sample",
    "SampledComparator",
    # Config
    "Config",
    "WatchConfig",
    "load_config",
    # Errors
    "PollFileError",
    "NotInitializedError",
    "ResourceError",
    "ReadFailureError",
    "PermissionDeniedError",
    "AlreadyWatchingError",
    "NoResourceSelectedError",
    # Resources
    "FileHandle",
    "MemoryHandle",
    "MemorySnapshot",
    # Storage
    "Initial",
    "Lazy",
    "MemoryStore",
    "PersistedValue",
    "YamlStore",
    # Watching
    "TickResult",
    "WatchController",
    "WatchEvent",
    "WatchEventKind",
    "WatchHost",
    "WatchState",
]
