from __future__ import annotations

import json
from pathlib import Path

import pytest

from hyperstorage.backends import FileBackend, MemoryBackend, SqliteBackend, StorageBackend, satisfies_backend
from hyperstorage.exceptions import BackendError, InvalidArgumentError


@pytest.fixture(params=["memory", "file", "sqlite"])
def backend(request: pytest.FixtureRequest, tmp_path: Path) -> StorageBackend:
    if request.param == "file":
        return FileBackend(tmp_path / "storage.json")
    if request.param == "sqlite":
        return SqliteBackend(tmp_path / "storage.db")
    return MemoryBackend()


class TestBackendContract:
    def test_missing_key_is_none(self, backend: StorageBackend) -> None:
        assert backend.get_item("nope") is None

    def test_set_and_overwrite(self, backend: StorageBackend) -> None:
        backend.set_item("a", "1")
        backend.set_item("a", "2")
        assert backend.get_item("a") == "2"
        assert len(backend) == 1

    def test_remove(self, backend: StorageBackend) -> None:
        backend.set_item("a", "1")
        backend.remove_item("a")
        backend.remove_item("never-set")
        assert backend.get_item("a") is None
        assert len(backend) == 0

    def test_keys_and_clear(self, backend: StorageBackend) -> None:
        backend.set_item("b", "2")
        backend.set_item("a", "1")
        assert sorted(backend.keys()) == ["a", "b"]
        backend.clear()
        assert list(backend.keys()) == []

    def test_empty_string_is_a_value(self, backend: StorageBackend) -> None:
        backend.set_item("a", "")
        assert backend.get_item("a") == ""

    def test_satisfies_protocol(self, backend: StorageBackend) -> None:
        assert isinstance(backend, StorageBackend)
        assert satisfies_backend(backend)


def test_satisfies_backend_rejects_plain_mapping() -> None:
    assert not satisfies_backend({"a": "1"})
    assert not satisfies_backend(None)


def test_memory_backend_initial_items_are_copied() -> None:
    initial = {"a": "1"}
    backend = MemoryBackend(initial)
    backend.set_item("b", "2")
    assert initial == {"a": "1"}


# ------------------------------------------------------------------
# FileBackend
# ------------------------------------------------------------------


class TestFileBackend:
    def test_writes_json_object(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "storage.json"
        FileBackend(path).set_item("settings", '{"json":1}')
        assert json.loads(path.read_text(encoding="utf-8")) == {"settings": '{"json":1}'}
        assert not path.with_name("storage.json.tmp").exists()

    def test_sees_writes_from_other_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        first = FileBackend(path)
        second = FileBackend(path)
        first.set_item("a", "1")
        assert second.get_item("a") == "1"

    def test_corrupt_file(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        path.write_text("{nope", encoding="utf-8")
        with pytest.raises(BackendError, match="Could not read"):
            FileBackend(path).get_item("a")

    def test_non_object_file(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        path.write_text('{"a": 1}', encoding="utf-8")
        with pytest.raises(BackendError, match="not an object of strings"):
            FileBackend(path).get_item("a")

    def test_failed_write_removes_temp_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "storage.json"
        backend = FileBackend(path)
        backend.set_item("a", "1")

        def _partial_dump(obj: object, fp: object, **kwargs: object) -> None:
            fp.write('{"a": ')  # type: ignore[attr-defined]
            raise OSError("disk full")

        monkeypatch.setattr("hyperstorage.backends.file.json.dump", _partial_dump)
        with pytest.raises(BackendError, match="disk full"):
            backend.set_item("b", "2")

        assert not path.with_name("storage.json.tmp").exists()
        monkeypatch.undo()
        assert backend.get_item("a") == "1"
        assert backend.get_item("b") is None


# ------------------------------------------------------------------
# SqliteBackend
# ------------------------------------------------------------------


class TestSqliteBackend:
    def test_custom_table(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.db"
        SqliteBackend(path, table="prefs").set_item("a", "1")
        assert SqliteBackend(path, table="prefs").get_item("a") == "1"
        assert SqliteBackend(path, table="other").get_item("a") is None

    @pytest.mark.parametrize("table", ["", "1abc", "drop table; --", "a-b"])
    def test_rejects_unsafe_table_names(self, tmp_path: Path, table: str) -> None:
        with pytest.raises(InvalidArgumentError):
            SqliteBackend(tmp_path / "storage.db", table=table)

    def test_unopenable_database(self, tmp_path: Path) -> None:
        backend = SqliteBackend(tmp_path / "missing-dir" / "storage.db")
        with pytest.raises(BackendError):
            backend.get_item("a")
