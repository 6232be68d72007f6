"""Audit log repository."""

from __future__ import annotations

from typing import Any

from policy_ledger.core.errors import StoreError
from policy_ledger.repositories.db_pool import DB_ERRORS, ThreadLocalConnection


class AuditRepository:
    """Persists and manages ledger transition audit logs."""

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    def add_log(self, action: str, entity: str, entity_key: str | None, detail: str) -> None:
        """Insert an audit log record."""
        try:
            self._pool.execute(
                """
                INSERT INTO audit_logs (action, entity, entity_key, detail)
                VALUES (?, ?, ?, ?)
                """,
                (action, entity, entity_key, detail),
            )
        except DB_ERRORS as error:
            raise StoreError(
                f"Failed to write audit log for {entity_key}",
                {"action": action, "error": error},
            ) from error

    def cleanup_old_logs(self, retention_days: int) -> int:
        """Delete logs older than retention_days and return removed row count."""
        cursor = self._pool.execute(
            """
            DELETE FROM audit_logs
            WHERE created_at < datetime('now', ?)
            """,
            (f"-{retention_days} days",),
        )
        return cursor.rowcount

    def list_logs(
        self,
        limit: int = 200,
        offset: int = 0,
        action: str | None = None,
        entity: str | None = None,
        entity_key: str | None = None,
    ) -> list[dict[str, Any]]:
        """List audit logs with optional filters, newest first."""
        where_clauses: list[str] = []
        params: list[Any] = []

        if action:
            where_clauses.append("action = ?")
            params.append(action)
        if entity:
            where_clauses.append("entity = ?")
            params.append(entity)
        if entity_key:
            where_clauses.append("entity_key = ?")
            params.append(entity_key)

        where_sql = ""
        if where_clauses:
            where_sql = "WHERE " + " AND ".join(where_clauses)

        rows = self._pool.fetchall(
            f"""
            SELECT id, action, entity, entity_key, detail, created_at
            FROM audit_logs
            {where_sql}
            ORDER BY id DESC
            LIMIT ? OFFSET ?
            """,
            tuple(params + [limit, offset]),
        )
        return [dict(row) for row in rows]
