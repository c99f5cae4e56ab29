"""Tests for the whole-file JSON state store."""

import json
from pathlib import Path

import pytest

from gatekeeper.errors import PersistenceReadError, PersistenceWriteError
from gatekeeper.storage import JsonFileStore, load_or_empty


class TestJsonFileStore:
    """Tests for JsonFileStore load/save."""

    def test_missing_file_loads_empty(self, tmp_path: Path):
        store = JsonFileStore(tmp_path / "missing.json")
        assert store.load() == {}

    def test_save_creates_directory_and_overwrites(self, tmp_path: Path):
        """Each save replaces the whole table."""
        store = JsonFileStore(tmp_path / "nested" / "table.json")
        store.save({"a": 1, "b": 2})
        store.save({"c": 3})

        assert json.loads(store.path.read_text()) == {"c": 3}
        assert store.load() == {"c": 3}

    def test_corrupt_file_raises_read_error(self, tmp_path: Path):
        path = tmp_path / "table.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceReadError):
            JsonFileStore(path).load()

    def test_non_object_raises_read_error(self, tmp_path: Path):
        path = tmp_path / "table.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(PersistenceReadError):
            JsonFileStore(path).load()

    def test_unwritable_path_raises_write_error(self, tmp_path: Path):
        """Writing where a directory already exists fails with PersistenceWriteError."""
        target = tmp_path / "table.json"
        target.mkdir()
        with pytest.raises(PersistenceWriteError):
            JsonFileStore(target).save({"a": 1})


class TestLoadOrEmpty:
    """Tests for startup loading."""

    def test_read_failure_is_treated_as_empty(self, tmp_path: Path):
        path = tmp_path / "table.json"
        path.write_text("garbage")
        assert load_or_empty(JsonFileStore(path)) == {}

    def test_valid_file_is_loaded(self, tmp_path: Path):
        path = tmp_path / "table.json"
        path.write_text('{"k": 4}')
        assert load_or_empty(JsonFileStore(path)) == {"k": 4}
