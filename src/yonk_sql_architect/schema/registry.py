"""Name-keyed registry of imported table definitions."""
from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

from ..models import TableDefinition, dedupe

logger = logging.getLogger(__name__)


class TableRegistry:
    """Ordered store of table definitions keyed by table name.

    Listing order is insertion order. Re-importing a known name updates the
    entry in place, so its position and id survive content changes. None of
    the mutating methods await, so each one is applied as a single step with
    respect to other coroutines sharing the registry.
    """

    def __init__(self, tables: Iterable[TableDefinition] | None = None):
        self._tables: dict[str, TableDefinition] = {}
        if tables:
            self.import_tables(tables)

    def __len__(self) -> int:
        return len(self._tables)

    def __iter__(self) -> Iterator[TableDefinition]:
        return iter(list(self._tables.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def list_tables(self) -> list[TableDefinition]:
        """All tables in insertion order."""
        return list(self._tables.values())

    def get(self, table_id: str) -> TableDefinition | None:
        for table in self._tables.values():
            if table.id == table_id:
                return table
        return None

    def get_by_name(self, name: str) -> TableDefinition | None:
        return self._tables.get(name)

    def search(self, query: str) -> list[TableDefinition]:
        """Case-insensitive substring match on table name or any tag."""
        needle = query.lower()
        if not needle:
            return self.list_tables()
        return [
            t for t in self._tables.values()
            if needle in t.name.lower() or any(needle in tag.lower() for tag in t.tags)
        ]

    def import_tables(self, batch: Iterable[TableDefinition]) -> None:
        """Merge a batch of definitions into the registry.

        Known names keep their id and position; their DDL is replaced and tags
        become existing tags followed by unseen incoming tags. Unknown names are
        appended in batch order.

        Args:
            batch: Definitions to merge, typically straight from the parser
        """
        added = 0
        merged = 0
        for incoming in batch:
            existing = self._tables.get(incoming.name)
            if existing is not None:
                self._tables[incoming.name] = TableDefinition(
                    id=existing.id,
                    name=incoming.name,
                    ddl=incoming.ddl,
                    tags=dedupe([*existing.tags, *incoming.tags]),
                )
                merged += 1
            else:
                self._tables[incoming.name] = incoming.model_copy(
                    update={"tags": dedupe(incoming.tags)}
                )
                added += 1

        logger.info(f"Imported tables: {added} added, {merged} merged ({len(self._tables)} total)")

    def remove(self, table_id: str) -> bool:
        """Delete the table with this id. Returns False when it is not present."""
        for name, table in self._tables.items():
            if table.id == table_id:
                del self._tables[name]
                logger.info(f"Removed table {name}")
                return True
        return False

    def clear(self) -> None:
        """Remove every table."""
        self._tables.clear()

    def update_tags(self, table_id: str, new_tags: Iterable[str]) -> bool:
        """Replace the tag set of one table. Returns False when the id is unknown."""
        for name, table in self._tables.items():
            if table.id == table_id:
                self._tables[name] = table.model_copy(update={"tags": dedupe(new_tags)})
                return True
        return False

    def to_snapshot(self) -> list[dict[str, Any]]:
        return [t.model_dump(mode="json") for t in self._tables.values()]

    @classmethod
    def from_snapshot(cls, items: Iterable[dict[str, Any]]) -> TableRegistry:
        return cls(TableDefinition.model_validate(item) for item in items)
