"""
Key-value snapshot stores.

Each collection (tables, tag library, saved queries) is persisted as one
whole serialized JSON array under its own key, replaced on every change.
Stores record when each key was last written.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import asyncpg

logger = logging.getLogger(__name__)

TABLES_KEY = "mysql_ai_tables"
TAG_LIBRARY_KEY = "mysql_ai_tag_library"
SAVED_QUERIES_KEY = "mysql_ai_saved_sqls"


class SnapshotStore(Protocol):
    async def put(self, key: str, payload: str) -> None:
        """Replace the snapshot stored under ``key``."""
        ...

    async def get(self, key: str) -> str | None:
        """Return the stored snapshot, or None if the key was never written."""
        ...

    async def updated_at(self, key: str) -> datetime | None:
        ...


class InMemorySnapshotStore:
    """Process-local store, used by tests and the ``memory`` backend."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.timestamps: dict[str, datetime] = {}
        self.writes: list[str] = []

    async def put(self, key: str, payload: str) -> None:
        self.data[key] = payload
        self.timestamps[key] = datetime.now(timezone.utc)
        self.writes.append(key)

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def updated_at(self, key: str) -> datetime | None:
        return self.timestamps.get(key)


class FileSnapshotStore:
    """One JSON file per key inside a directory.

    Files hold ``{"key": ..., "updated_at": ..., "payload": "<serialized array>"}``
    and are written through a temp file so a crash never leaves half a snapshot.
    Disk access runs in a worker thread.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> dict | None:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, key: str, payload: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        envelope = {
            "key": key,
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "payload": payload,
        }
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(envelope, f, ensure_ascii=False)
        os.replace(tmp_path, path)
        return path

    async def put(self, key: str, payload: str) -> None:
        path = await asyncio.to_thread(self._write, key, payload)
        logger.debug(f"Wrote snapshot {key} to {path}")

    async def get(self, key: str) -> str | None:
        try:
            envelope = await asyncio.to_thread(self._read, key)
        except (OSError, json.JSONDecodeError) as e:
            # Empty payload is not valid JSON, so the caller's corrupt-snapshot fallback applies
            logger.warning(f"Snapshot file for {key} is unreadable: {e}")
            return ""
        if envelope is None:
            return None
        payload = envelope.get("payload") if isinstance(envelope, dict) else None
        return payload if isinstance(payload, str) else json.dumps(envelope)

    async def updated_at(self, key: str) -> datetime | None:
        try:
            envelope = await asyncio.to_thread(self._read, key)
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(envelope, dict) or not envelope.get("updated_at"):
            return None
        return datetime.fromisoformat(envelope["updated_at"])


class PostgresSnapshotStore:
    """Snapshots in a single PostgreSQL table, one row per key."""

    def __init__(self, database_url: str, table_name: str = "sql_architect_snapshot"):
        self.database_url = database_url
        self.table_name = table_name

    async def init_schema(self) -> None:
        """Create the snapshot table if it does not exist."""
        conn = await asyncpg.connect(dsn=self.database_url)
        try:
            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    key TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                )
            """)
        finally:
            await conn.close()

    async def put(self, key: str, payload: str) -> None:
        conn = await asyncpg.connect(dsn=self.database_url)
        try:
            await conn.execute(
                f"""
                INSERT INTO {self.table_name} (key, payload, updated_at)
                VALUES ($1, $2, now())
                ON CONFLICT (key) DO UPDATE
                SET payload = EXCLUDED.payload, updated_at = EXCLUDED.updated_at
                """,
                key,
                payload
            )
        finally:
            await conn.close()

    async def get(self, key: str) -> str | None:
        conn = await asyncpg.connect(dsn=self.database_url)
        try:
            return await conn.fetchval(
                f"SELECT payload FROM {self.table_name} WHERE key = $1",
                key
            )
        finally:
            await conn.close()

    async def updated_at(self, key: str) -> datetime | None:
        conn = await asyncpg.connect(dsn=self.database_url)
        try:
            return await conn.fetchval(
                f"SELECT updated_at FROM {self.table_name} WHERE key = $1",
                key
            )
        finally:
            await conn.close()


async def create_snapshot_store(backend: str, directory: str | Path = "", database_url: str = "") -> SnapshotStore:
    """Build the snapshot store for a configured backend.

    Args:
        backend: "file", "postgres" or "memory"
        directory: Snapshot directory for the file backend
        database_url: PostgreSQL DSN for the postgres backend

    Returns:
        Ready-to-use store (the postgres table is created if missing)
    """
    if backend == "file":
        return FileSnapshotStore(directory)
    if backend == "postgres":
        store = PostgresSnapshotStore(database_url)
        await store.init_schema()
        return store
    if backend == "memory":
        return InMemorySnapshotStore()
    raise ValueError(f"Unknown storage backend: {backend}")
