"""Watch controller: polls one resource and reports probable changes.

Each poll tick first compares the resource's modification stamp with the
last one seen (the fast path). Only when the stamp is unchanged does it ask
the SampledComparator whether the sampled content still matches; a content
change re-captures the baseline. A second, independent timer ends the
session once nothing has changed for ``max_delta_ms``.

A stamp-only change is reported but does not re-capture the baseline, so
later ticks keep comparing against the samples taken before it.

Both timers are asyncio tasks sharing one WatchSession. Poll ticks of a
session never overlap: a tick that finds the previous one still running is
skipped, and deadlines missed by a slow tick are dropped rather than queued.
Once a session is closed every pending or in-flight tick is a no-op.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from contextlib import closing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pollfile.comparator import Region, SampledComparator
from pollfile.config.schema import WatchConfig
from pollfile.errors import AlreadyWatchingError, PermissionDeniedError, ReadFailureError
from pollfile.logging import get_logger
from pollfile.resource import ResourceHandle, Snapshot

log = get_logger("watching")


def monotonic_ms() -> float:
    """Milliseconds from a monotonic clock."""
    return time.monotonic() * 1000.0


class WatchState(Enum):
    """Controller state."""

    IDLE = "idle"
    WATCHING = "watching"

    def __str__(self) -> str:
        return self.value


class WatchEventKind(Enum):
    """Kinds of notification emitted to listeners."""

    CHANGED_METADATA = "changed: metadata"
    CHANGED_CONTENT = "changed: content"
    STOPPED = "stopped watching"
    READ_ERROR = "read error"

    def __str__(self) -> str:
        return self.value


class TickResult(Enum):
    """Outcome of a single poll tick."""

    UNCHANGED = "unchanged"
    METADATA_CHANGED = "metadata_changed"
    CONTENT_CHANGED = "content_changed"
    READ_ERROR = "read_error"
    STOPPED = "stopped"  # Permission lost, session ended
    SKIPPED = "skipped"  # Previous tick still running
    INACTIVE = "inactive"  # No session, or it closed mid-tick


@dataclass(frozen=True)
class WatchEvent:
    """A notification about the watched resource."""

    kind: WatchEventKind
    resource: str
    cause: BaseException | None = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for event payloads."""
        return {
            "kind": self.kind.value,
            "resource": self.resource,
            "cause": str(self.cause) if self.cause else None,
            "timestamp": self.timestamp,
        }


WatchListener = Callable[[WatchEvent], None]


@dataclass
class WatchSession:
    """State of one active watch."""

    handle: ResourceHandle
    comparator: SampledComparator
    config: WatchConfig
    modified: Any  # Last modification stamp seen
    last_update: float  # Clock ms of the last detected activity
    tick_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    poll_task: asyncio.Task[None] | None = None
    idle_task: asyncio.Task[None] | None = None
    closed: bool = False
    stopped: asyncio.Event = field(default_factory=asyncio.Event)


class WatchController:
    """Drives the poll and idle-timeout timers for one resource at a time.

    Example:
        controller = WatchController(WatchConfig(watch_interval_ms=250))
        controller.add_listener(lambda event: print(event.kind))
        await controller.start(FileHandle("/var/log/big.log"))
        await controller.wait_stopped()
    """

    def __init__(
        self,
        config: WatchConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            config: Watch parameters, used for every session this controller starts.
            clock: Returns the current time in milliseconds. Defaults to a
                monotonic clock; tests pass a fake one.
        """
        self._config = (config or WatchConfig()).validate()
        self._clock = clock or monotonic_ms
        self._session: WatchSession | None = None
        self._listeners: list[WatchListener] = []

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def config(self) -> WatchConfig:
        return self._config

    @config.setter
    def config(self, value: WatchConfig) -> None:
        """Replace the config; takes effect on the next start()."""
        self._config = value.validate()

    @property
    def state(self) -> WatchState:
        return WatchState.WATCHING if self._session is not None else WatchState.IDLE

    @property
    def is_watching(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> WatchSession | None:
        return self._session

    @property
    def last_update(self) -> float | None:
        """Clock ms of the last detected activity, None when idle."""
        return self._session.last_update if self._session else None

    def regions(self) -> list[Region]:
        """Sample regions of the active baseline, empty when idle."""
        if self._session is None:
            return []
        return self._session.comparator.get_regions()

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_listener(self, callback: WatchListener) -> Callable[[], None]:
        """Register a notification callback.

        Returns:
            A function that unregisters the callback.
        """
        self._listeners.append(callback)

        def unregister() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unregister

    def _emit(self, session: WatchSession, kind: WatchEventKind, cause: BaseException | None = None) -> None:
        event = WatchEvent(kind=kind, resource=session.handle.name, cause=cause)
        if cause is not None:
            log.warning("%s: %s (%s)", session.handle.name, kind, cause)
        else:
            log.info("%s: %s", session.handle.name, kind)

        for callback in list(self._listeners):
            try:
                callback(event)
            except Exception as e:
                log.error("Error in watch listener: %s", e)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, handle: ResourceHandle, schedule: bool = True) -> WatchSession:
        """Start watching ``handle``.

        Args:
            handle: The resource to watch.
            schedule: Start the poll and idle timers. Pass False to drive
                ``poll_tick``/``idle_tick`` by hand.

        Raises:
            AlreadyWatchingError: A session is already active.
            PermissionDeniedError: The resource cannot be read.
            ReadFailureError: The initial snapshot or baseline read failed.
        """
        if self._session is not None:
            raise AlreadyWatchingError(f"already watching {self._session.handle.name}")

        config = self._config
        await handle.check_access()
        snapshot = await handle.snapshot()
        comparator = SampledComparator(
            block_size=config.block_size,
            sample_count=config.sample_count,
        )
        with closing(snapshot):
            await comparator.init(snapshot)

        # Another start() may have won while we were reading
        if self._session is not None:
            raise AlreadyWatchingError(f"already watching {self._session.handle.name}")

        session = WatchSession(
            handle=handle,
            comparator=comparator,
            config=config,
            modified=snapshot.modified,
            last_update=self._clock(),
        )
        self._session = session

        if schedule:
            session.poll_task = asyncio.create_task(self._poll_loop(session))
            session.idle_task = asyncio.create_task(self._idle_loop(session))

        log.info(
            "Watching %s (size=%d, samples=%d, interval=%dms, stop after %dms idle)",
            handle.name,
            snapshot.size,
            len(comparator.get_regions()),
            config.watch_interval_ms,
            config.max_delta_ms,
        )
        return session

    def stop(self) -> None:
        """Stop watching without emitting a notification. No-op when idle."""
        session = self._session
        if session is None:
            return
        self._close(session)
        log.info("Stopped watching %s", session.handle.name)

    def _close(self, session: WatchSession) -> None:
        """Tear down ``session``; safe to call from inside its own tasks."""
        if session.closed:
            return
        session.closed = True
        if self._session is session:
            self._session = None

        current = asyncio.current_task() if _has_running_loop() else None
        for task in (session.poll_task, session.idle_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        session.stopped.set()

    async def wait_stopped(self) -> None:
        """Wait until the current session ends. Returns at once when idle."""
        session = self._session
        if session is not None:
            await session.stopped.wait()

    # -------------------------------------------------------------------------
    # Ticks
    # -------------------------------------------------------------------------

    async def poll_tick(self) -> TickResult:
        """Run one poll tick against the active session."""
        session = self._session
        if session is None:
            return TickResult.INACTIVE
        return await self._tick(session)

    def idle_tick(self) -> bool:
        """Run one idle-timeout check.

        Returns:
            True if the session was stopped by this check.
        """
        session = self._session
        if session is None:
            return False
        return self._check_idle(session)

    async def _tick(self, session: WatchSession) -> TickResult:
        if session.closed:
            return TickResult.INACTIVE
        if session.tick_lock.locked():
            log.debug("Previous tick for %s still running, skipping", session.handle.name)
            return TickResult.SKIPPED

        async with session.tick_lock:
            try:
                return await self._check(session)
            except PermissionDeniedError as e:
                if session.closed:
                    return TickResult.INACTIVE
                self._emit(session, WatchEventKind.READ_ERROR, e)
                self._close(session)
                self._emit(session, WatchEventKind.STOPPED)
                return TickResult.STOPPED
            except ReadFailureError as e:
                if session.closed:
                    return TickResult.INACTIVE
                self._emit(session, WatchEventKind.READ_ERROR, e)
                return TickResult.READ_ERROR

    async def _check(self, session: WatchSession) -> TickResult:
        snapshot = await session.handle.snapshot()
        with closing(snapshot):
            return await self._compare(session, snapshot)

    async def _compare(self, session: WatchSession, snapshot: Snapshot) -> TickResult:
        if session.closed:
            return TickResult.INACTIVE

        # Fast path: the stamp moved; the baseline is kept
        if snapshot.modified != session.modified:
            session.modified = snapshot.modified
            session.last_update = self._clock()
            self._emit(session, WatchEventKind.CHANGED_METADATA)
            return TickResult.METADATA_CHANGED

        before = time.perf_counter()
        same = await session.comparator.is_same(snapshot)
        log.debug("Comparison executed in %.1f milliseconds", (time.perf_counter() - before) * 1000)
        if session.closed:
            return TickResult.INACTIVE
        if same:
            return TickResult.UNCHANGED

        self._emit(session, WatchEventKind.CHANGED_CONTENT)
        await session.comparator.init(snapshot)
        if session.closed:
            return TickResult.INACTIVE
        session.last_update = self._clock()
        return TickResult.CONTENT_CHANGED

    def _check_idle(self, session: WatchSession) -> bool:
        if session.closed:
            return False
        idle_ms = self._clock() - session.last_update
        if idle_ms <= session.config.max_delta_ms:
            return False
        log.debug("No change for %.0fms, stopping", idle_ms)
        self._close(session)
        self._emit(session, WatchEventKind.STOPPED)
        return True

    # -------------------------------------------------------------------------
    # Timers
    # -------------------------------------------------------------------------

    async def _poll_loop(self, session: WatchSession) -> None:
        """Run poll ticks on fixed deadlines until the session closes."""
        loop = asyncio.get_running_loop()
        interval = session.config.watch_interval_ms / 1000.0
        next_at = loop.time() + interval

        while not session.closed:
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            if session.closed:
                break

            try:
                await self._tick(session)
            except Exception:
                log.exception("Unexpected error in poll tick for %s", session.handle.name)

            now = loop.time()
            next_at += interval
            if next_at <= now:
                missed = int((now - next_at) // interval) + 1
                next_at += missed * interval
                log.debug("Poll tick overran its interval, dropped %d tick(s)", missed)

    async def _idle_loop(self, session: WatchSession) -> None:
        """Run idle-timeout checks until the session closes."""
        period = session.config.idle_check_ms / 1000.0
        while not session.closed:
            await asyncio.sleep(period)
            if self._check_idle(session):
                break


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
