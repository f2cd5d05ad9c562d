"""
Application state for SQL Architect.

The Workspace owns the table registry, the tag library and the saved query
list, plus the collaborators that act on them (tagging coordinator, SQL
generation oracle, snapshot store). CLI commands and HTTP routes only ever go
through its methods. Every mutation writes a full snapshot of the collections
it touched straight away.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from .config import ArchitectConfig
from .generation import GeneratedSql, LlmSqlGenerator, SqlGenerationOracle, generate_sql
from .llm import set_llm_config
from .models import SavedQuery, TableDefinition
from .results import ErrorKind, Result
from .saved_queries import SavedQueryList
from .schema import TableRegistry, parse_sql_schemas
from .storage import (
    SAVED_QUERIES_KEY,
    TABLES_KEY,
    TAG_LIBRARY_KEY,
    SnapshotStore,
    create_snapshot_store,
)
from .tagging import (
    AutoTagBatchCoordinator,
    AutoTagReport,
    LlmTaggingOracle,
    TaggingOracle,
    TagLibrary,
    split_tag_input,
)
from .tagging.auto_tagger import BATCH_SIZE, MAX_TAGS_PER_TABLE

logger = logging.getLogger(__name__)

NO_CREATE_TABLE_MESSAGE = "No valid 'CREATE TABLE' statements found in the content."


class _CorruptSnapshot(Exception):
    pass


async def _load_array(store: SnapshotStore, key: str) -> list[Any] | None:
    """Load a JSON array snapshot; None when the key was never written."""
    payload = await store.get(key)
    if payload is None:
        return None
    try:
        items = json.loads(payload)
    except (json.JSONDecodeError, TypeError) as e:
        raise _CorruptSnapshot(f"{key}: {e}") from e
    if not isinstance(items, list):
        raise _CorruptSnapshot(f"{key}: expected a JSON array, got {type(items).__name__}")
    return items


class Workspace:
    """Single owner of all user-visible state."""

    def __init__(
        self,
        store: SnapshotStore,
        tagging_oracle: TaggingOracle,
        sql_oracle: SqlGenerationOracle,
        registry: TableRegistry | None = None,
        tag_library: TagLibrary | None = None,
        saved_queries: SavedQueryList | None = None,
        batch_size: int = BATCH_SIZE,
        max_tags: int = MAX_TAGS_PER_TABLE,
    ):
        self.store = store
        self.sql_oracle = sql_oracle
        self.registry = registry if registry is not None else TableRegistry()
        self.tag_library = tag_library if tag_library is not None else TagLibrary.with_defaults()
        self.saved_queries = saved_queries if saved_queries is not None else SavedQueryList()
        self.tagger = AutoTagBatchCoordinator(
            self.registry,
            tagging_oracle,
            batch_size=batch_size,
            max_tags=max_tags,
        )
        # Notices about snapshots that had to be replaced on load
        self.load_warnings: list[Result[None]] = []

    @classmethod
    async def load(
        cls,
        store: SnapshotStore,
        tagging_oracle: TaggingOracle,
        sql_oracle: SqlGenerationOracle,
        batch_size: int = BATCH_SIZE,
        max_tags: int = MAX_TAGS_PER_TABLE,
    ) -> Workspace:
        """Restore a workspace from its snapshots.

        Missing snapshots start empty, except the tag library which starts from
        the default vocabulary. Corrupt snapshots are replaced the same way and
        reported in ``load_warnings``.
        """
        warnings: list[Result[None]] = []

        def corrupt(key: str, error: Exception) -> None:
            logger.error(f"Failed to load snapshot {key}, using defaults: {error}")
            warnings.append(Result.failure(ErrorKind.SNAPSHOT_CORRUPT, f"Saved {key} could not be read"))

        registry = TableRegistry()
        try:
            items = await _load_array(store, TABLES_KEY)
            if items is not None:
                registry = TableRegistry.from_snapshot(items)
        except (_CorruptSnapshot, ValidationError) as e:
            corrupt(TABLES_KEY, e)

        tag_library = TagLibrary.with_defaults()
        try:
            items = await _load_array(store, TAG_LIBRARY_KEY)
            if items is not None:
                tag_library = TagLibrary(str(t) for t in items)
        except _CorruptSnapshot as e:
            corrupt(TAG_LIBRARY_KEY, e)

        saved_queries = SavedQueryList()
        try:
            items = await _load_array(store, SAVED_QUERIES_KEY)
            if items is not None:
                saved_queries = SavedQueryList.from_snapshot(items)
        except (_CorruptSnapshot, ValidationError) as e:
            corrupt(SAVED_QUERIES_KEY, e)

        workspace = cls(
            store,
            tagging_oracle,
            sql_oracle,
            registry=registry,
            tag_library=tag_library,
            saved_queries=saved_queries,
            batch_size=batch_size,
            max_tags=max_tags,
        )
        workspace.load_warnings = warnings
        logger.info(
            f"Workspace loaded: {len(registry)} tables, {len(tag_library)} tags, "
            f"{len(saved_queries)} saved queries"
        )
        return workspace

    # -- persistence --------------------------------------------------------

    async def _persist(self, key: str, items: list[Any]) -> None:
        await self.store.put(key, json.dumps(items, ensure_ascii=False))

    async def persist_tables(self) -> None:
        await self._persist(TABLES_KEY, self.registry.to_snapshot())

    async def persist_tag_library(self) -> None:
        await self._persist(TAG_LIBRARY_KEY, self.tag_library.tags)

    async def persist_saved_queries(self) -> None:
        await self._persist(SAVED_QUERIES_KEY, self.saved_queries.to_snapshot())

    # -- tables -------------------------------------------------------------

    def list_tables(self, search: str = "") -> list[TableDefinition]:
        return self.registry.search(search)

    async def import_sql(
        self,
        raw_sql: str,
        tags: Iterable[str] | str | None = None,
    ) -> Result[list[TableDefinition]]:
        """Parse raw SQL and merge the tables it defines.

        Args:
            raw_sql: Pasted text or file contents
            tags: Tags for every imported table, either a list or the free-text
                tag field (split on commas and whitespace)

        Returns:
            Result with the stored definitions for the imported names, or
            PARSE_YIELDED_NOTHING when no CREATE TABLE statement was found
        """
        definitions = parse_sql_schemas(raw_sql)
        if not definitions:
            return Result.failure(ErrorKind.PARSE_YIELDED_NOTHING, NO_CREATE_TABLE_MESSAGE)

        tag_list = split_tag_input(tags) if isinstance(tags, str) else list(tags or [])
        absorbed: list[str] = []
        if tag_list:
            definitions = [d.model_copy(update={"tags": list(tag_list)}) for d in definitions]
            absorbed = self.tag_library.absorb(tag_list)

        self.registry.import_tables(definitions)
        if absorbed:
            await self.persist_tag_library()
        await self.persist_tables()

        names = list(dict.fromkeys(d.name for d in definitions))
        imported = [self.registry.get_by_name(name) for name in names]
        return Result.success(imported, f"Imported {len(imported)} tables")

    async def import_file(
        self,
        path: str | Path,
        tags: Iterable[str] | str | None = None,
    ) -> Result[list[TableDefinition]]:
        """Import an uploaded dump. The extension is not checked."""
        try:
            raw_sql = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            return Result.failure(ErrorKind.READ_FAILED, f"Failed to read file: {path}")
        return await self.import_sql(raw_sql, tags)

    async def remove_table(self, table_id: str) -> bool:
        removed = self.registry.remove(table_id)
        if removed:
            await self.persist_tables()
        return removed

    async def clear_tables(self) -> None:
        self.registry.clear()
        await self.persist_tables()

    async def update_table_tags(self, table_id: str, tags: Iterable[str]) -> bool:
        """Replace one table's tags (manual edit)."""
        updated = self.registry.update_tags(table_id, tags)
        if updated:
            await self.persist_tables()
        return updated

    async def auto_tag(self) -> Result[AutoTagReport]:
        """Run the batched auto-tagger over every registered table."""
        if not len(self.registry):
            return Result.success(AutoTagReport(), "No tables to tag")

        result = await self.tagger.run(self.registry.list_tables(), self.tag_library)
        report = result.value
        if report is not None:
            if report.tables_updated:
                await self.persist_tables()
            if report.tags_absorbed:
                await self.persist_tag_library()
        return result

    # -- tag library ----------------------------------------------------------

    async def add_tag(self, tag: str) -> bool:
        added = self.tag_library.add(tag)
        if added:
            await self.persist_tag_library()
        return added

    async def remove_tag(self, tag: str) -> bool:
        removed = self.tag_library.remove(tag)
        if removed:
            await self.persist_tag_library()
        return removed

    async def replace_tags(self, tags: Iterable[str]) -> None:
        self.tag_library.replace_all(tags)
        await self.persist_tag_library()

    # -- SQL generation / saved queries -------------------------------------

    async def generate_sql(self, requirement: str) -> Result[GeneratedSql]:
        return await generate_sql(self.sql_oracle, self.registry.list_tables(), requirement)

    async def save_query(self, code: str, name: str | None = None) -> SavedQuery:
        query = self.saved_queries.save(code, name)
        await self.persist_saved_queries()
        return query

    async def rename_query(self, query_id: str, new_name: str) -> bool:
        renamed = self.saved_queries.rename(query_id, new_name)
        if renamed:
            await self.persist_saved_queries()
        return renamed

    async def update_query_code(self, query_id: str, new_code: str) -> bool:
        updated = self.saved_queries.update_code(query_id, new_code)
        if updated:
            await self.persist_saved_queries()
        return updated

    async def delete_query(self, query_id: str) -> bool:
        deleted = self.saved_queries.delete(query_id)
        if deleted:
            await self.persist_saved_queries()
        return deleted

    async def clear_queries(self) -> None:
        self.saved_queries.clear()
        await self.persist_saved_queries()


async def open_workspace(config: ArchitectConfig) -> Workspace:
    """Wire a workspace from configuration: LLM oracles plus the snapshot store."""
    set_llm_config(config.llm.model_dump())
    store = await create_snapshot_store(
        config.storage.backend,
        directory=config.storage.directory,
        database_url=config.storage.database_url,
    )
    return await Workspace.load(
        store,
        LlmTaggingOracle(),
        LlmSqlGenerator(),
        batch_size=config.tagging.batch_size,
        max_tags=config.tagging.max_tags,
    )
