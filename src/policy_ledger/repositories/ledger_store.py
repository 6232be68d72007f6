"""Keyed byte storage backing the ledger.

Both stores are last-write-wins per key for plain ``put`` calls. Each key also
carries a version counter so read-modify-write operations can make their
write conditional on the version they read:

- ``expected_version=None``: the key must still be absent.
- ``expected_version=<int>``: the key must still be at that version.

A failed condition raises WriteConflict. Nothing is retried.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from policy_ledger.core.errors import NotFound, StoreError, WriteConflict
from policy_ledger.models.codec import ReadResult, classify
from policy_ledger.repositories.db_pool import DB_ERRORS, INTEGRITY_ERRORS, ThreadLocalConnection

ANY_VERSION = object()


class LedgerStore(ABC):
    """Opaque keyed byte storage."""

    @abstractmethod
    def get_versioned(self, key: str) -> tuple[bytes | None, int | None]:
        """Return the stored bytes and version, or (None, None) when absent."""

    @abstractmethod
    def put(self, key: str, value: bytes, expected_version=ANY_VERSION) -> int:
        """Store bytes under key and return the version this call wrote."""

    def get(self, key: str) -> bytes:
        """Return the bytes stored under key or raise NotFound."""
        value, _ = self.get_versioned(key)
        if value is None:
            raise NotFound(f"No value stored for key {key}", {"key": key})
        return value


class InMemoryLedgerStore(LedgerStore):
    """Dictionary-backed store guarded by a lock."""

    def __init__(self):
        self._items: dict[str, tuple[bytes, int]] = {}
        self._lock = threading.Lock()

    def get_versioned(self, key: str) -> tuple[bytes | None, int | None]:
        with self._lock:
            item = self._items.get(key)
        if item is None:
            return None, None
        return item

    def put(self, key: str, value: bytes, expected_version=ANY_VERSION) -> int:
        with self._lock:
            current = self._items.get(key)
            current_version = current[1] if current else None
            if expected_version is not ANY_VERSION and expected_version != current_version:
                raise WriteConflict(
                    f"Key {key} changed since it was read",
                    {"expected": expected_version, "actual": current_version},
                )
            new_version = (current_version or 0) + 1
            self._items[key] = (bytes(value), new_version)
            return new_version

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._items)


class SqliteLedgerStore(LedgerStore):
    """Store rows in the ledger_state table."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    def get_versioned(self, key: str) -> tuple[bytes | None, int | None]:
        try:
            row = self._pool.fetchone(
                "SELECT value, version FROM ledger_state WHERE key = ?",
                (key,),
            )
        except DB_ERRORS as error:
            raise StoreError(f"Failed to get state for {key}", {"error": error}) from error
        if row is None:
            return None, None
        return bytes(row["value"]), int(row["version"])

    def put(self, key: str, value: bytes, expected_version=ANY_VERSION) -> int:
        try:
            if expected_version is ANY_VERSION:
                self._pool.execute(
                    """
                    INSERT INTO ledger_state (key, value, version)
                    VALUES (?, ?, 1)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        version = ledger_state.version + 1,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, bytes(value)),
                )
                row = self._pool.fetchone(
                    "SELECT version FROM ledger_state WHERE key = ?",
                    (key,),
                )
                return int(row["version"])
            if expected_version is None:
                try:
                    self._pool.execute(
                        "INSERT INTO ledger_state (key, value, version) VALUES (?, ?, 1)",
                        (key, bytes(value)),
                    )
                except INTEGRITY_ERRORS as error:
                    raise WriteConflict(
                        f"Key {key} was written since it was read",
                        {"expected": None},
                    ) from error
                return 1

            cursor = self._pool.execute(
                """
                UPDATE ledger_state
                SET value = ?,
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE key = ? AND version = ?
                """,
                (bytes(value), key, expected_version),
            )
        except DB_ERRORS as error:
            raise StoreError(f"Failed to put state for {key}", {"error": error}) from error

        if cursor.rowcount == 0:
            raise WriteConflict(
                f"Key {key} changed since it was read",
                {"expected": expected_version},
            )
        return expected_version + 1


def read_record(store: LedgerStore, key: str, kind: type) -> ReadResult:
    """Read key and classify it as absent, valid or corrupt."""
    raw, version = store.get_versioned(key)
    return classify(kind, raw, version)
