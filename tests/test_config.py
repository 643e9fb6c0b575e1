from __future__ import annotations

from pathlib import Path

import pytest

from hyperstorage import HyperStorage
from hyperstorage.backends import FileBackend, MemoryBackend, SqliteBackend
from hyperstorage.config import StorageConfig, local_storage
from hyperstorage.exceptions import ConfigError

_ENV_VARS = ("HYPERSTORAGE_BACKEND", "HYPERSTORAGE_PATH", "HYPERSTORAGE_TABLE")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_to_memory() -> None:
    config = StorageConfig.from_env()
    assert config == StorageConfig()
    assert isinstance(config.create_backend(), MemoryBackend)


def test_path_alone_selects_file_backend(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HYPERSTORAGE_PATH", str(tmp_path / "storage.json"))
    config = StorageConfig.from_env()
    assert config.backend == "file"
    assert config.path == tmp_path / "storage.json"
    assert isinstance(config.create_backend(), FileBackend)


def test_sqlite_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HYPERSTORAGE_BACKEND", "SQLite")
    monkeypatch.setenv("HYPERSTORAGE_PATH", str(tmp_path / "storage.db"))
    monkeypatch.setenv("HYPERSTORAGE_TABLE", "prefs")
    backend = StorageConfig.from_env().create_backend()
    assert isinstance(backend, SqliteBackend)
    assert backend.table == "prefs"


def test_overrides_win(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HYPERSTORAGE_PATH", str(tmp_path / "storage.json"))
    config = StorageConfig.from_env(backend="memory")
    assert config.backend == "memory"


def test_string_path_is_coerced(tmp_path: Path) -> None:
    config = StorageConfig(backend="file", path=str(tmp_path / "x.json"))  # type: ignore[arg-type]
    assert config.path == tmp_path / "x.json"


def test_unknown_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HYPERSTORAGE_BACKEND", "redis")
    with pytest.raises(ConfigError, match="Unknown backend"):
        StorageConfig.from_env()


def test_durable_backend_needs_path() -> None:
    with pytest.raises(ConfigError, match="requires a path"):
        StorageConfig(backend="sqlite")


def test_local_storage_is_shared_per_config(tmp_path: Path) -> None:
    config = StorageConfig(backend="file", path=tmp_path / "local.json")
    assert local_storage(config) is local_storage(StorageConfig(backend="file", path=tmp_path / "local.json"))
    assert local_storage(config) is not local_storage(StorageConfig(backend="file", path=tmp_path / "other.json"))


def test_local_storage_reads_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HYPERSTORAGE_PATH", str(tmp_path / "env.json"))
    store = HyperStorage("settings", {"theme": "light"}, backend=local_storage())
    store.set("theme", "dark")

    reopened = HyperStorage("settings", {"theme": "light"}, backend=FileBackend(tmp_path / "env.json"))
    assert reopened.value == {"theme": "dark"}
