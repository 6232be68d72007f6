"""Thread-local database connection management."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import nullcontext
from pathlib import Path
from typing import Any

from policy_ledger.core.config import StoreConfig, get_required_env

try:
    from pysqlcipher3 import dbapi2 as sqlcipher

    SQLCIPHER_AVAILABLE = True
except ImportError:
    sqlcipher = None
    SQLCIPHER_AVAILABLE = False

if SQLCIPHER_AVAILABLE:
    DB_ERRORS: tuple[type[Exception], ...] = (sqlite3.Error, sqlcipher.Error)
    INTEGRITY_ERRORS: tuple[type[Exception], ...] = (
        sqlite3.IntegrityError,
        sqlcipher.IntegrityError,
    )
else:
    DB_ERRORS = (sqlite3.Error,)
    INTEGRITY_ERRORS = (sqlite3.IntegrityError,)

MEMORY_PATH = ":memory:"


class ThreadLocalConnection:
    """Maintain one DB connection per thread for SQLite/SQLCipher safety.

    An in-memory database exists only inside the connection that opened it,
    so ``:memory:`` pools share a single connection across threads and
    serialize every statement on a lock.
    """

    def __init__(self, config: StoreConfig):
        self._config = config
        self._local = threading.local()
        self._shared = config.path == MEMORY_PATH
        self._shared_connection: sqlite3.Connection | None = None
        self._lock = threading.RLock() if self._shared else None

    def _open_connection(self) -> sqlite3.Connection:
        db_path = self._config.path
        if db_path == MEMORY_PATH:
            # Nothing reaches disk, so no key is applied.
            connection = sqlite3.connect(db_path, check_same_thread=False)
            connection.row_factory = sqlite3.Row
            return connection

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        if SQLCIPHER_AVAILABLE:
            connection = sqlcipher.connect(db_path, check_same_thread=False)
            key = get_required_env(self._config.key_env).replace("'", "''")
            connection.execute(f"PRAGMA key = '{key}'")
            connection.execute("PRAGMA cipher_compatibility = 4")
            connection.row_factory = sqlite3.Row
            return connection

        if not self._config.allow_sqlite_fallback:
            raise RuntimeError(
                "SQLCipher is required but unavailable. Install pysqlcipher3 or enable fallback."
            )

        connection = sqlite3.connect(db_path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        return connection

    def get_connection(self) -> sqlite3.Connection:
        """Return current thread's connection, creating it when needed."""
        if self._shared:
            with self._lock:
                if self._shared_connection is None:
                    self._shared_connection = self._open_connection()
                return self._shared_connection

        connection = getattr(self._local, "connection", None)
        if connection is None:
            connection = self._open_connection()
            self._local.connection = connection
        return connection

    def close_connection(self) -> None:
        """Close current thread's connection."""
        if self._shared:
            with self._lock:
                if self._shared_connection is not None:
                    self._shared_connection.close()
                    self._shared_connection = None
            return

        connection = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            self._local.connection = None

    def _guard(self):
        return self._lock if self._shared else nullcontext()

    def _run(self, query: str, params: tuple[Any, ...]) -> sqlite3.Cursor:
        connection = self.get_connection()
        cursor = connection.cursor()
        try:
            cursor.execute(query, params)
        except DB_ERRORS:
            connection.rollback()
            raise
        connection.commit()
        return cursor

    def execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        """Execute a query and commit the transaction."""
        with self._guard():
            return self._run(query, params)

    def fetchall(self, query: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        """Fetch all rows for a query."""
        with self._guard():
            return self._run(query, params).fetchall()

    def fetchone(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        """Fetch first row for a query."""
        with self._guard():
            return self._run(query, params).fetchone()
