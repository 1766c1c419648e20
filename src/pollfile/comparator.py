"""Probabilistic change detection by sampling blocks of a resource.

``SampledComparator.init()`` captures a baseline: the resource size plus a
set of evenly spread blocks. ``is_same()`` later re-reads the same ranges
from another snapshot and compares them byte for byte.

For resources no larger than one block the whole content is captured, so
the comparison is exact. For larger resources only
``min(sample_count, ceil(size / block_size))`` blocks are compared, which
bounds the cost of both calls regardless of size but can miss changes
confined to unsampled ranges.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from pollfile.errors import NotInitializedError
from pollfile.logging import TRACE, get_logger
from pollfile.resource import ByteSource

log = get_logger("comparator")

DEFAULT_BLOCK_SIZE = 4096
DEFAULT_SAMPLE_COUNT = 64


@dataclass(frozen=True)
class Region:
    """A byte range ``[offset, offset + length)``."""

    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def to_dict(self) -> dict[str, int]:
        return {"offset": self.offset, "length": self.length}


@dataclass(frozen=True)
class Sample:
    """A Region plus the bytes read from it at baseline time."""

    offset: int
    length: int
    data: bytes

    @property
    def region(self) -> Region:
        return Region(self.offset, self.length)


@dataclass(frozen=True)
class Baseline:
    """Size and samples captured by one ``init()`` call."""

    size: int
    samples: tuple[Sample, ...]


def plan_offsets(size: int, block_size: int, sample_count: int) -> list[int]:
    """Compute block start offsets for a resource larger than one block.

    Blocks are centred on the midpoints of ``count`` equal slices and pulled
    inward at both ends so none crosses a boundary. Adjacent blocks may
    overlap when ``sample_count`` is large relative to ``size / block_size``.
    """
    count = min(sample_count, math.ceil(size / block_size))
    highest = max(0, size - block_size)
    half = block_size // 2
    offsets = []
    for i in range(count):
        ratio = (i + 0.5) / count
        offset = math.floor(ratio * size) - half
        offsets.append(min(max(offset, 0), highest))
    return offsets


class SampledComparator:
    """Probabilistic equality checker based on sampled blocks.

    Call ``init(source)`` once to capture a baseline, then ``is_same(source)``
    to compare later snapshots against it. ``init`` may be called again at
    any time to re-baseline.

    Example:
        comparator = SampledComparator(block_size=4096, sample_count=64)
        await comparator.init(await handle.snapshot())
        ...
        if not await comparator.is_same(await handle.snapshot()):
            print("changed")
    """

    def __init__(
        self,
        block_size: int = DEFAULT_BLOCK_SIZE,
        sample_count: int = DEFAULT_SAMPLE_COUNT,
    ) -> None:
        """Initialize the comparator.

        Args:
            block_size: Target bytes per sample block.
            sample_count: Target number of blocks. Reduced for small resources.
        """
        if block_size <= 0:
            raise ValueError(f"block_size must be positive, got {block_size}")
        if sample_count <= 0:
            raise ValueError(f"sample_count must be positive, got {sample_count}")
        self._block_size = block_size
        self._sample_count = sample_count
        self._baseline: Baseline | None = None

    @property
    def block_size(self) -> int:
        return self._block_size

    @property
    def sample_count(self) -> int:
        return self._sample_count

    @property
    def initialized(self) -> bool:
        """True once a baseline has been captured."""
        return self._baseline is not None

    @property
    def baseline_size(self) -> int:
        """Size of the resource when the baseline was captured."""
        return self._require("baseline_size").size

    def _require(self, operation: str) -> Baseline:
        if self._baseline is None:
            raise NotInitializedError(operation)
        return self._baseline

    async def init(self, source: ByteSource) -> None:
        """Capture (or replace) the baseline from ``source``.

        The previous baseline stays in place if any read fails.
        """
        size = source.size

        if size == 0:
            samples: list[Sample] = []
        elif size <= self._block_size:
            data = await source.read(0, size)
            samples = [Sample(0, len(data), data)]
        else:
            samples = []
            for offset in plan_offsets(size, self._block_size, self._sample_count):
                data = await source.read(offset, self._block_size)
                samples.append(Sample(offset, len(data), data))

        self._baseline = Baseline(size=size, samples=tuple(samples))
        log.log(TRACE, "Baseline captured: size=%d samples=%d", size, len(samples))

    async def is_same(self, source: ByteSource) -> bool:
        """Return True if every sampled range of ``source`` matches the baseline.

        Raises:
            NotInitializedError: ``init`` has not been called.
        """
        baseline = self._require("is_same")

        # Quick reject by size, no reads
        if source.size != baseline.size:
            return False

        for sample in baseline.samples:
            block = await source.read(sample.offset, sample.length)
            if block != sample.data:
                log.log(TRACE, "Sample at offset %d differs", sample.offset)
                return False

        return True

    def get_regions(self) -> list[Region]:
        """Return the baseline's sample ranges without their bytes.

        Raises:
            NotInitializedError: ``init`` has not been called.
        """
        baseline = self._require("get_regions")
        return [sample.region for sample in baseline.samples]

    def coverage(self) -> float:
        """Fraction of the baseline's bytes covered by at least one sample."""
        baseline = self._require("coverage")
        if baseline.size == 0:
            return 0.0

        covered = 0
        current_start = current_end = -1
        for region in sorted(self.get_regions(), key=lambda r: r.offset):
            if region.offset > current_end:
                covered += current_end - current_start
                current_start, current_end = region.offset, region.end
            else:
                current_end = max(current_end, region.end)
        covered += current_end - current_start
        return covered / baseline.size

    def __repr__(self) -> str:
        state = (
            f"size={self._baseline.size}, samples={len(self._baseline.samples)}"
            if self._baseline is not None
            else "uninitialized"
        )
        return (
            f"SampledComparator(block_size={self._block_size}, "
            f"sample_count={self._sample_count}, {state})"
        )
