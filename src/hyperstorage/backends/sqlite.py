"""SQLite backend: one row per key."""

from __future__ import annotations

import logging
import os
import re
import sqlite3
from collections.abc import Iterator
from contextlib import closing
from pathlib import Path

from hyperstorage.exceptions import BackendError, InvalidArgumentError

_logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

DEFAULT_TABLE = "hyperstorage"


class SqliteBackend:
    """Durable backend keeping entries in an SQLite table.

    A connection is opened per operation, so instances are safe to share
    between threads and other processes see committed writes immediately.
    The table is created on first use.
    """

    def __init__(self, path: str | os.PathLike[str], *, table: str = DEFAULT_TABLE) -> None:
        if not isinstance(table, str) or not _TABLE_NAME_RE.fullmatch(table):
            raise InvalidArgumentError(f"Invalid table name {table!r}")
        self.path = Path(path)
        self.table = table
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.path)
        except sqlite3.Error as exc:
            raise BackendError(f"Could not open {self.path}: {exc}") from exc
        if not self._initialized:
            try:
                with conn:
                    conn.execute(
                        f"CREATE TABLE IF NOT EXISTS {self.table} (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
                    )
            except sqlite3.Error as exc:
                conn.close()
                raise BackendError(f"Could not create table {self.table} in {self.path}: {exc}") from exc
            self._initialized = True
            _logger.debug("Initialized table %s in %s", self.table, self.path)
        return conn

    def _execute(self, sql: str, params: tuple[str, ...] = (), *, key: str | None = None) -> list[tuple[str, ...]]:
        with closing(self._connect()) as conn:
            try:
                with conn:
                    return conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise BackendError(f"SQLite operation failed on {self.path}: {exc}", key=key) from exc

    def get_item(self, key: str) -> str | None:
        rows = self._execute(f"SELECT value FROM {self.table} WHERE key = ?", (key,), key=key)
        if not rows:
            return None
        return rows[0][0]

    def set_item(self, key: str, value: str) -> None:
        self._execute(
            f"INSERT INTO {self.table} (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
            key=key,
        )

    def remove_item(self, key: str) -> None:
        self._execute(f"DELETE FROM {self.table} WHERE key = ?", (key,), key=key)

    def clear(self) -> None:
        self._execute(f"DELETE FROM {self.table}")

    def keys(self) -> Iterator[str]:
        return iter([row[0] for row in self._execute(f"SELECT key FROM {self.table} ORDER BY key")])

    def __len__(self) -> int:
        return int(self._execute(f"SELECT COUNT(*) FROM {self.table}")[0][0])

    def __repr__(self) -> str:
        return f"SqliteBackend(path={str(self.path)!r}, table={self.table!r})"
