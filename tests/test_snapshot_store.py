"""Tests for snapshot store backends.

The PostgreSQL tests need a reachable database and run only when
SQL_ARCHITECT_TEST_DATABASE_URL is set.
"""
import json
import os
import threading
import uuid
from datetime import datetime

import asyncpg
import pytest

from yonk_sql_architect.storage import (
    TABLES_KEY,
    FileSnapshotStore,
    InMemorySnapshotStore,
    PostgresSnapshotStore,
    create_snapshot_store,
)
from yonk_sql_architect.workspace import Workspace
from yonk_sql_architect.results import ErrorKind

from conftest import FakeSqlOracle, FakeTaggingOracle


TEST_DATABASE_URL = os.getenv("SQL_ARCHITECT_TEST_DATABASE_URL")


class TestFileSnapshotStore:
    """Test the one-file-per-key backend."""

    @pytest.mark.asyncio
    async def test_put_get(self, tmp_path):
        """Should return the last payload written for a key."""
        store = FileSnapshotStore(tmp_path / "snapshots")

        await store.put(TABLES_KEY, '[{"name": "a"}]')
        await store.put(TABLES_KEY, '[{"name": "b"}]')

        assert await store.get(TABLES_KEY) == '[{"name": "b"}]'
        assert isinstance(await store.updated_at(TABLES_KEY), datetime)

    @pytest.mark.asyncio
    async def test_missing_key(self, tmp_path):
        """Should return None for a key never written."""
        store = FileSnapshotStore(tmp_path)

        assert await store.get(TABLES_KEY) is None
        assert await store.updated_at(TABLES_KEY) is None

    @pytest.mark.asyncio
    async def test_envelope_on_disk(self, tmp_path):
        """Should store the payload inside a JSON envelope without temp files left."""
        store = FileSnapshotStore(tmp_path)

        await store.put(TABLES_KEY, "[]")

        envelope = json.loads((tmp_path / f"{TABLES_KEY}.json").read_text(encoding="utf-8"))
        assert envelope["key"] == TABLES_KEY
        assert envelope["payload"] == "[]"
        assert list(tmp_path.glob("*.tmp")) == []

    @pytest.mark.asyncio
    async def test_unicode_payload(self, tmp_path):
        """Should keep non-ASCII tags intact."""
        store = FileSnapshotStore(tmp_path)

        await store.put("mysql_ai_tag_library", '["北森", "企微"]')

        assert json.loads(await store.get("mysql_ai_tag_library")) == ["北森", "企微"]

    @pytest.mark.asyncio
    async def test_disk_access_off_event_loop(self, tmp_path, monkeypatch):
        """Should read and write snapshot files from a worker thread."""
        store = FileSnapshotStore(tmp_path)
        threads = []
        write, read = store._write, store._read

        def recording_write(key, payload):
            threads.append(threading.get_ident())
            return write(key, payload)

        def recording_read(key):
            threads.append(threading.get_ident())
            return read(key)

        monkeypatch.setattr(store, "_write", recording_write)
        monkeypatch.setattr(store, "_read", recording_read)

        await store.put(TABLES_KEY, "[]")
        assert await store.get(TABLES_KEY) == "[]"

        assert len(threads) == 2
        assert threading.get_ident() not in threads

    @pytest.mark.asyncio
    async def test_corrupt_file_falls_back(self, tmp_path):
        """Should let the workspace start empty when the file is garbage."""
        (tmp_path / f"{TABLES_KEY}.json").write_text("{truncated", encoding="utf-8")
        store = FileSnapshotStore(tmp_path)

        workspace = await Workspace.load(store, FakeTaggingOracle(), FakeSqlOracle())

        assert len(workspace.registry) == 0
        assert workspace.load_warnings[0].error == ErrorKind.SNAPSHOT_CORRUPT


class TestCreateSnapshotStore:
    """Test backend selection."""

    @pytest.mark.asyncio
    async def test_file_backend(self, tmp_path):
        store = await create_snapshot_store("file", directory=tmp_path)
        assert isinstance(store, FileSnapshotStore)

    @pytest.mark.asyncio
    async def test_memory_backend(self):
        store = await create_snapshot_store("memory")
        assert isinstance(store, InMemorySnapshotStore)

    @pytest.mark.asyncio
    async def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            await create_snapshot_store("redis")


@pytest.mark.skipif(not TEST_DATABASE_URL, reason="SQL_ARCHITECT_TEST_DATABASE_URL not set")
class TestPostgresSnapshotStore:
    """Test the PostgreSQL backend against a live database."""

    @pytest.mark.asyncio
    async def test_upsert(self):
        """Should replace the payload on a second put."""
        table_name = f"snapshot_test_{uuid.uuid4().hex[:8]}"
        store = PostgresSnapshotStore(TEST_DATABASE_URL, table_name=table_name)
        await store.init_schema()

        try:
            assert await store.get(TABLES_KEY) is None

            await store.put(TABLES_KEY, "[1]")
            await store.put(TABLES_KEY, "[2]")

            assert await store.get(TABLES_KEY) == "[2]"
            assert await store.updated_at(TABLES_KEY) is not None
        finally:
            conn = await asyncpg.connect(dsn=TEST_DATABASE_URL)
            try:
                await conn.execute(f"DROP TABLE IF EXISTS {table_name}")
            finally:
                await conn.close()
