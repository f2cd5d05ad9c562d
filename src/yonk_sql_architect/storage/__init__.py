"""Snapshot persistence for tables, tag library and saved queries."""
from __future__ import annotations

from .snapshot_store import (
    SAVED_QUERIES_KEY,
    TABLES_KEY,
    TAG_LIBRARY_KEY,
    FileSnapshotStore,
    InMemorySnapshotStore,
    PostgresSnapshotStore,
    SnapshotStore,
    create_snapshot_store,
)

__all__ = [
    "SAVED_QUERIES_KEY",
    "TABLES_KEY",
    "TAG_LIBRARY_KEY",
    "FileSnapshotStore",
    "InMemorySnapshotStore",
    "PostgresSnapshotStore",
    "SnapshotStore",
    "create_snapshot_store",
]
