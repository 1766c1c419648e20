"""Watch host: which resource is selected, remembered, and being watched.

The host owns a WatchController and a KeyValueStore. Selecting a local file
remembers its path in the store so a later run can ``restore()`` it;
clearing the selection forgets it. The store is injected, so the host has no
process-wide state of its own.
"""

from __future__ import annotations

from pathlib import Path

from pollfile.config.schema import WatchConfig
from pollfile.errors import NoResourceSelectedError
from pollfile.logging import get_logger
from pollfile.resource import FileHandle, ResourceHandle
from pollfile.storage import Initial, KeyValueStore, PersistedValue
from pollfile.watching.controller import WatchController, WatchSession

log = get_logger("host")

LAST_PATH_KEY = "last_path"


class WatchHost:
    """Selection, persistence and control of a single watched resource."""

    def __init__(
        self,
        store: KeyValueStore,
        config: WatchConfig | None = None,
        controller: WatchController | None = None,
    ) -> None:
        self._controller = controller or WatchController(config)
        if controller is not None and config is not None:
            self._controller.config = config
        self._last_path: PersistedValue[str | None] = PersistedValue(
            store, LAST_PATH_KEY, Initial(None)
        )
        self._handle: ResourceHandle | None = None

    @property
    def controller(self) -> WatchController:
        return self._controller

    @property
    def handle(self) -> ResourceHandle | None:
        return self._handle

    @property
    def last_path(self) -> Path | None:
        """The remembered path, if any."""
        value = self._last_path.get()
        return Path(value) if value else None

    def restore(self) -> ResourceHandle | None:
        """Select the remembered file, if one was stored.

        Returns:
            The restored handle, or None when nothing was remembered.
        """
        path = self.last_path
        if path is None:
            return None
        self._controller.stop()
        self._handle = FileHandle(path)
        log.debug("Restored last watched path %s", path)
        return self._handle

    def select(self, handle: ResourceHandle, remember: bool = True) -> None:
        """Select ``handle``, stopping any current session.

        Local files are remembered for ``restore()`` unless ``remember`` is
        False; call ``remember()`` later to store them once they proved readable.
        """
        self._controller.stop()
        self._handle = handle
        if remember:
            self.remember()

    def remember(self) -> bool:
        """Store the selected file's path for ``restore()``.

        Returns:
            True if a path was stored; only local files are remembered.
        """
        if not isinstance(self._handle, FileHandle):
            return False
        path = str(self._handle.path.resolve())
        self._last_path.set(path)
        log.debug("Remembered %s", path)
        return True

    def clear(self) -> None:
        """Deselect the resource, stop watching and forget the remembered path."""
        self._controller.stop()
        self._handle = None
        self._last_path.reset()

    async def start(self) -> WatchSession:
        """Start watching the selected resource.

        Raises:
            NoResourceSelectedError: Nothing is selected.
        """
        if self._handle is None:
            raise NoResourceSelectedError("no resource selected")
        return await self._controller.start(self._handle)

    def stop(self) -> None:
        self._controller.stop()
