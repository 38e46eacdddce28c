"""
Local document store backed by async SQLite.

The local backing for deployments without a networked store. Documents are
stored as JSON TEXT in a single table keyed by ``(scope, item_id)``; the
database file survives process restarts and runs in WAL mode so the API can
read while a reconciliation writes.

Operations:
- get(scope, item_id): SELECT one document.
- list_keys(scope): SELECT item ids of a scope.
- upsert(scope, item_id, value): INSERT ... ON CONFLICT DO UPDATE.
- delete(scope, item_id): DELETE, a no-op for missing rows.
- close(): Close the underlying database connection.

Supports async context manager protocol for clean resource management.

CHANGELOG:
- 2026-10-08: Wrap aiosqlite errors in StoreError (STORY-105)
- 2026-10-06: Initial creation, adapted from the edge spool (STORY-105)

TODO:
- None
"""

from __future__ import annotations

import json
from pathlib import Path

import aiosqlite

from portal.src.stores.base import Document, StoreError

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    scope TEXT NOT NULL,
    item_id TEXT NOT NULL,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (scope, item_id)
);
"""

_GET_SQL = "SELECT payload FROM documents WHERE scope = ? AND item_id = ?;"

_LIST_SQL = "SELECT item_id FROM documents WHERE scope = ?;"

_UPSERT_SQL = """\
INSERT INTO documents (scope, item_id, payload) VALUES (?, ?, ?)
ON CONFLICT (scope, item_id)
DO UPDATE SET payload = excluded.payload, updated_at = datetime('now');
"""

_DELETE_SQL = "DELETE FROM documents WHERE scope = ? AND item_id = ?;"


class LocalStore:
    """Store protocol implementation on a local SQLite file.

    Args:
        path: Filesystem path for the SQLite database file.
              Accepts ``str`` or ``pathlib.Path``.

    Usage::

        async with LocalStore(path="/data/portal.db") as store:
            await store.upsert("access:alice", "plant-1", {"plantId": "plant-1"})
            keys = await store.list_keys("access:alice")
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the SQLite connection and initialize the schema."""
        self._db = await aiosqlite.connect(str(self._path))
        await self._db.execute("PRAGMA journal_mode=WAL;")
        await self._db.execute(_CREATE_TABLE_SQL)
        await self._db.commit()

    async def close(self) -> None:
        """Close the underlying SQLite connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> LocalStore:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Store protocol
    # ------------------------------------------------------------------

    async def get(self, scope: str, item_id: str) -> Document | None:
        db = self._conn()
        try:
            cursor = await db.execute(_GET_SQL, (scope, item_id))
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(f"get {scope}/{item_id} failed: {exc}") from exc
        return json.loads(row[0]) if row is not None else None

    async def list_keys(self, scope: str) -> set[str]:
        db = self._conn()
        try:
            cursor = await db.execute(_LIST_SQL, (scope,))
            rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(f"list {scope} failed: {exc}") from exc
        return {row[0] for row in rows}

    async def upsert(self, scope: str, item_id: str, value: Document) -> None:
        db = self._conn()
        try:
            await db.execute(_UPSERT_SQL, (scope, item_id, json.dumps(value)))
            await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(f"upsert {scope}/{item_id} failed: {exc}") from exc

    async def delete(self, scope: str, item_id: str) -> None:
        db = self._conn()
        try:
            await db.execute(_DELETE_SQL, (scope, item_id))
            await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(f"delete {scope}/{item_id} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _conn(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not opened. Call open() or use async with."
        return self._db
