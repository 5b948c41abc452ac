"""Persistent byte-key/byte-value engines backing the second cache tier."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Optional, Protocol

_DATABASE_NAME = "poms.sqlite"


class KeyValueEngine(Protocol):
    """Storage engine contract used by ``PersistentPomCache``."""

    def get(self, key: bytes) -> Optional[bytes]:
        ...

    def put(self, key: bytes, value: bytes) -> None:
        ...


class SqliteEngine:
    """SQLite file opened in exclusive locking mode.

    The lock is held for the lifetime of the connection, so a second engine on
    the same directory fails to open until this one is closed. Writes from
    several threads are serialised here.
    """

    def __init__(self, directory: Path, *, timeout: float = 1.0) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        self._path = directory / _DATABASE_NAME
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(self._path),
            timeout=timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        try:
            self._conn.execute("PRAGMA locking_mode=EXCLUSIVE")
            self._conn.execute("BEGIN EXCLUSIVE")
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS entries (key BLOB PRIMARY KEY, value BLOB NOT NULL)"
            )
            self._conn.execute("COMMIT")
        except sqlite3.Error:
            self._conn.close()
            raise

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            row = self._conn.execute("SELECT value FROM entries WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def put(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO entries (key, value) VALUES (?, ?)", (key, value)
            )

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = ["KeyValueEngine", "SqliteEngine"]
