"""Byte-addressable resources watched by pollfile.

A ResourceHandle names something that can be watched (a local file, an
in-memory buffer). Each call to ``snapshot()`` returns a Snapshot: the size
and modification stamp observed at that instant plus a ranged ``read`` that
is clipped to that size. The comparator only needs the ByteSource part.

File I/O runs in the event loop's default executor so a slow disk never
blocks the other watch timer.
"""

from __future__ import annotations

import asyncio
import os
import threading
from pathlib import Path
from typing import Any, BinaryIO, Protocol

from pollfile.errors import PermissionDeniedError, ReadFailureError, ResourceError


class ByteSource(Protocol):
    """Anything with a size and ranged reads."""

    @property
    def size(self) -> int: ...

    async def read(self, offset: int, length: int) -> bytes:
        """Read ``length`` bytes at ``offset``, clipped to ``size``."""
        ...


class Snapshot(ByteSource, Protocol):
    """A ByteSource plus the modification stamp seen when it was taken.

    ``modified`` is opaque: callers only compare it for inequality.
    """

    @property
    def modified(self) -> Any: ...

    def close(self) -> None:
        """Release anything held open for reads. Further reads may reopen."""
        ...


class ResourceHandle(Protocol):
    """A watchable resource."""

    @property
    def name(self) -> str: ...

    async def snapshot(self) -> Snapshot:
        """Observe current size and modification stamp.

        Raises:
            ReadFailureError: The resource is missing or unreadable.
            PermissionDeniedError: Read access was refused.
        """
        ...

    async def check_access(self) -> None:
        """Raise PermissionDeniedError if the resource cannot be read."""
        ...


def _clip(offset: int, length: int, size: int) -> tuple[int, int]:
    """Clip ``[offset, offset+length)`` to ``[0, size)``; returns (start, end)."""
    start = min(max(0, offset), size)
    end = min(start + max(0, length), size)
    return start, end


def translate_os_error(name: str, exc: OSError) -> ResourceError:
    """Map an OSError raised while touching ``name`` onto the pollfile hierarchy."""
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(name, f"permission denied ({exc.strerror or exc})")
    if isinstance(exc, FileNotFoundError):
        return ReadFailureError(name, "file not found")
    return ReadFailureError(name, exc.strerror or str(exc))


# =============================================================================
# Local files
# =============================================================================


class FileSnapshot:
    """A stat() result of a local file with ranged reads bounded by it.

    The file is opened on the first read and kept open until ``close()``,
    so a full comparison pass costs a single open.
    """

    def __init__(self, path: Path, size: int, modified: int) -> None:
        self._path = path
        self._size = size
        self._modified = modified
        self._file: BinaryIO | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def size(self) -> int:
        return self._size

    @property
    def modified(self) -> int:
        return self._modified

    def _read_range(self, start: int, end: int) -> bytes:
        with self._lock:
            if self._file is None:
                self._file = open(self._path, "rb")
            self._file.seek(start)
            return self._file.read(end - start)

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    async def read(self, offset: int, length: int) -> bytes:
        start, end = _clip(offset, length, self._size)
        if start >= end:
            return b""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._read_range, start, end)
        except OSError as e:
            raise translate_os_error(str(self._path), e) from e

    def __repr__(self) -> str:
        return f"FileSnapshot({str(self._path)!r}, size={self._size}, modified={self._modified})"


class FileHandle:
    """A local file, identified by path.

    The modification stamp is ``st_mtime_ns`` so sub-second rewrites are
    still visible on filesystems that record them.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    def _stat(self) -> FileSnapshot:
        st = self._path.stat()
        if not self._path.is_file():
            raise IsADirectoryError(21, "not a regular file", str(self._path))
        return FileSnapshot(self._path, st.st_size, st.st_mtime_ns)

    async def snapshot(self) -> FileSnapshot:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._stat)
        except OSError as e:
            raise translate_os_error(str(self._path), e) from e

    def _check_access(self) -> None:
        if not self._path.exists():
            raise FileNotFoundError(2, "No such file or directory", str(self._path))
        if not os.access(self._path, os.R_OK):
            raise PermissionError(13, "Permission denied", str(self._path))
        # os.access can be fooled by ACLs; an actual open is authoritative
        with open(self._path, "rb"):
            pass

    async def check_access(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._check_access)
        except OSError as e:
            raise translate_os_error(str(self._path), e) from e

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FileHandle) and other._path == self._path

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"FileHandle({str(self._path)!r})"


# =============================================================================
# In-memory resources
# =============================================================================


class MemorySnapshot:
    """An immutable byte buffer usable wherever a Snapshot is expected."""

    def __init__(self, data: bytes, modified: Any = 0) -> None:
        self._data = bytes(data)
        self._modified = modified

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def modified(self) -> Any:
        return self._modified

    async def read(self, offset: int, length: int) -> bytes:
        start, end = _clip(offset, length, len(self._data))
        return self._data[start:end]

    def close(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"MemorySnapshot(size={len(self._data)}, modified={self._modified!r})"


class MemoryHandle:
    """A mutable in-memory resource.

    Every mutation bumps ``version``, which serves as the modification stamp.
    ``write(..., touch=False)`` changes bytes without touching the stamp,
    which is how a content-only change is simulated.
    """

    def __init__(self, data: bytes = b"", name: str = "<memory>") -> None:
        self._data = bytearray(data)
        self._name = name
        self.version = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def data(self) -> bytes:
        return bytes(self._data)

    def write(self, offset: int, data: bytes, touch: bool = True) -> None:
        """Overwrite bytes at ``offset``, growing the buffer if needed."""
        end = offset + len(data)
        if end > len(self._data):
            self._data.extend(b"\x00" * (end - len(self._data)))
        self._data[offset:end] = data
        if touch:
            self.version += 1

    def replace(self, data: bytes, touch: bool = True) -> None:
        """Replace the whole content."""
        self._data = bytearray(data)
        if touch:
            self.version += 1

    def touch(self) -> None:
        """Bump the modification stamp without changing content."""
        self.version += 1

    async def snapshot(self) -> MemorySnapshot:
        return MemorySnapshot(self._data, modified=self.version)

    async def check_access(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"MemoryHandle({self._name!r}, size={len(self._data)}, version={self.version})"
