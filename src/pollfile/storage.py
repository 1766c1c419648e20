"""Persistence of small values across runs.

Used to remember the last watched resource. The store is a port: the watch
host receives one at construction instead of reaching into a global.

State files are YAML mappings written atomically:
    last_path: /var/log/big.log
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, Protocol, TypeVar, Union

import yaml

from pollfile.logging import get_logger

log = get_logger("storage")

T = TypeVar("T")

_UNSET: Any = object()


# =============================================================================
# Initializers
# =============================================================================


@dataclass(frozen=True)
class Initial(Generic[T]):
    """An initial value given directly."""

    value: T


@dataclass
class Lazy(Generic[T]):
    """An initial value computed by ``factory`` on first use, then cached."""

    factory: Callable[[], T]
    _value: Any = field(default=_UNSET, repr=False, compare=False)

    def get(self) -> T:
        if self._value is _UNSET:
            self._value = self.factory()
        return self._value


Initializer = Union[Initial[T], Lazy[T]]


def resolve_initializer(init: Initializer[T]) -> T:
    """Return the value an Initializer stands for."""
    if isinstance(init, Initial):
        return init.value
    if isinstance(init, Lazy):
        return init.get()
    raise TypeError(f"expected Initial or Lazy, got {type(init).__name__}")


# =============================================================================
# Stores
# =============================================================================


class KeyValueStore(Protocol):
    """Minimal persistent key/value store."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """A KeyValueStore that lives only as long as the process."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(data or {})

    def get(self, key: str) -> Any | None:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class YamlStore:
    """A KeyValueStore backed by one YAML file.

    Unreadable or malformed files read as empty; write failures propagate.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            log.warning("Invalid YAML in %s: %s", self._path, e)
            return {}
        except OSError as e:
            log.warning("Error reading %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True)
            os.replace(temp_path, self._path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise
        log.debug("Saved state to %s", self._path)

    def get(self, key: str) -> Any | None:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


# =============================================================================
# Persisted values
# =============================================================================


class PersistedValue(Generic[T]):
    """A single value kept in a KeyValueStore under ``key``.

    On first ``get`` a missing key is filled from the initializer and written
    back; ``reset`` restores the initial value and removes the stored key.
    """

    def __init__(self, store: KeyValueStore, key: str, initial: Initializer[T]) -> None:
        self._store = store
        self._key = key
        self._initial = initial
        self._value: Any = _UNSET

    @property
    def key(self) -> str:
        return self._key

    def get(self) -> T:
        if self._value is _UNSET:
            stored = self._store.get(self._key)
            if stored is not None:
                self._value = stored
            else:
                self._value = resolve_initializer(self._initial)
                if self._value is not None:
                    self._store.set(self._key, self._value)
        return self._value

    def set(self, value: T | Callable[[T], T]) -> T:
        """Store ``value``, or the result of applying it to the current value."""
        if callable(value):
            value = value(self.get())
        self._value = value
        self._store.set(self._key, value)
        return value

    def reset(self) -> T:
        self._value = resolve_initializer(self._initial)
        self._store.delete(self._key)
        return self._value
