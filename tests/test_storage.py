"""Tests for persistence: initializers, stores and persisted values."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from pollfile.storage import (
    Initial,
    Lazy,
    MemoryStore,
    PersistedValue,
    YamlStore,
    resolve_initializer,
)


class TestInitializers:
    """Tests for the Initial | Lazy sum type."""

    def test_initial(self) -> None:
        assert resolve_initializer(Initial(5)) == 5

    def test_lazy_resolved_once(self) -> None:
        """Test the factory runs on first use only."""
        calls: list[int] = []

        def factory() -> list[str]:
            calls.append(1)
            return ["x"]

        lazy = Lazy(factory)
        assert calls == []
        first = resolve_initializer(lazy)
        second = resolve_initializer(lazy)
        assert first is second
        assert calls == [1]

    def test_rejects_other_values(self) -> None:
        with pytest.raises(TypeError):
            resolve_initializer(5)  # type: ignore[arg-type]


class TestYamlStore:
    """Tests for the YAML-backed store."""

    def test_round_trip(self, tmp_path: Path) -> None:
        """Test values survive a new store instance."""
        path = tmp_path / "state" / "state.yaml"
        YamlStore(path).set("last_path", "/data/big.log")

        assert YamlStore(path).get("last_path") == "/data/big.log"
        assert yaml.safe_load(path.read_text()) == {"last_path": "/data/big.log"}

    def test_delete(self, tmp_path: Path) -> None:
        store = YamlStore(tmp_path / "state.yaml")
        store.set("a", 1)
        store.set("b", 2)
        store.delete("a")
        store.delete("missing")
        assert store.get("a") is None
        assert store.get("b") == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        assert YamlStore(tmp_path / "none.yaml").get("a") is None

    def test_invalid_yaml_reads_empty(self, tmp_path: Path) -> None:
        """Test a corrupt state file is treated as empty and then overwritten."""
        path = tmp_path / "state.yaml"
        path.write_text("invalid: yaml: :")
        store = YamlStore(path)
        assert store.get("a") is None
        store.set("a", 1)
        assert store.get("a") == 1

    def test_no_temp_file_left(self, tmp_path: Path) -> None:
        store = YamlStore(tmp_path / "state.yaml")
        store.set("a", 1)
        assert [p.name for p in tmp_path.iterdir()] == ["state.yaml"]


class TestPersistedValue:
    """Tests for PersistedValue."""

    def test_missing_key_populated_from_initial(self) -> None:
        """Test the initial value is written back on first get."""
        store = MemoryStore()
        value = PersistedValue(store, "count", Initial(3))
        assert value.get() == 3
        assert store.data == {"count": 3}

    def test_stored_value_wins(self) -> None:
        store = MemoryStore({"count": 7})
        value = PersistedValue(store, "count", Lazy(lambda: 3))
        assert value.get() == 7

    def test_none_initial_not_written(self) -> None:
        store = MemoryStore()
        value: PersistedValue[str | None] = PersistedValue(store, "path", Initial(None))
        assert value.get() is None
        assert store.data == {}

    def test_set_value_and_function(self) -> None:
        """Test set accepts a value or an updater function."""
        store = MemoryStore()
        value = PersistedValue(store, "count", Initial(1))
        value.set(5)
        assert value.set(lambda n: n + 1) == 6
        assert store.data["count"] == 6

    def test_reset(self) -> None:
        """Test reset restores the initial value and deletes the key."""
        store = MemoryStore()
        value = PersistedValue(store, "count", Initial(1))
        value.set(9)
        assert value.reset() == 1
        assert value.get() == 1
        assert "count" not in store.data
