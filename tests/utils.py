"""Shared test utilities for pollfile tests."""

from __future__ import annotations

from typing import Any

from pollfile.resource import MemoryHandle, MemorySnapshot


def pattern_bytes(size: int, seed: int = 0) -> bytes:
    """Deterministic non-repeating-ish content of ``size`` bytes."""
    return bytes((i * 31 + seed * 7 + (i >> 8)) % 251 for i in range(size))


class CountingSource:
    """Wraps bytes and counts read() calls."""

    def __init__(self, data: bytes) -> None:
        self._snapshot = MemorySnapshot(data)
        self.reads: list[tuple[int, int]] = []

    @property
    def size(self) -> int:
        return self._snapshot.size

    @property
    def modified(self) -> Any:
        return self._snapshot.modified

    async def read(self, offset: int, length: int) -> bytes:
        self.reads.append((offset, length))
        return await self._snapshot.read(offset, length)


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FlakyHandle(MemoryHandle):
    """MemoryHandle whose snapshot() raises ``error`` while it is set."""

    def __init__(self, data: bytes = b"", name: str = "flaky") -> None:
        super().__init__(data, name=name)
        self.error: Exception | None = None

    async def snapshot(self) -> MemorySnapshot:
        if self.error is not None:
            raise self.error
        return await super().snapshot()
