"""Exception hierarchy for pollfile.

Comparator contract violations (NotInitializedError) are programming errors
and always propagate. Resource errors are raised by resource adapters and
are turned into notifications by the watch controller.
"""

from __future__ import annotations


class PollFileError(Exception):
    """Base exception for all pollfile errors."""


class NotInitializedError(PollFileError, RuntimeError):
    """Comparator queried before a baseline was captured."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"SampledComparator.{operation}() called before init(); capture a baseline first"
        )
        self.operation = operation


class ResourceError(PollFileError):
    """A watched resource could not be accessed."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"{name}: {message}")
        self.name = name


class ReadFailureError(ResourceError):
    """A read of the resource failed or the resource vanished.

    Recoverable: the watch session keeps polling.
    """


class PermissionDeniedError(ResourceError):
    """Read access to the resource was refused or revoked.

    Not recoverable: the watch session stops.
    """


class AlreadyWatchingError(PollFileError):
    """start() called while a watch session is active."""


class NoResourceSelectedError(PollFileError):
    """A watch was requested but no resource has been selected."""
