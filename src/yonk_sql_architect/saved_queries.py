"""Bookmarked SQL queries, newest first."""
from __future__ import annotations

import random
from typing import Any, Iterable

from .models import SavedQuery


class SavedQueryList:
    """Keyed list of saved queries. No merging: every save is a new entry."""

    def __init__(self, items: Iterable[SavedQuery] | None = None):
        self._items: list[SavedQuery] = list(items or [])

    def __len__(self) -> int:
        return len(self._items)

    def list_queries(self) -> list[SavedQuery]:
        return list(self._items)

    def get(self, query_id: str) -> SavedQuery | None:
        return next((q for q in self._items if q.id == query_id), None)

    def save(self, code: str, name: str | None = None) -> SavedQuery:
        """Save a query at the top of the list, naming it if no name is given."""
        query = SavedQuery(
            name=name or f"SQL Query #{random.randrange(10000)}",
            code=code,
        )
        self._items.insert(0, query)
        return query

    def rename(self, query_id: str, new_name: str) -> bool:
        return self._update(query_id, name=new_name)

    def update_code(self, query_id: str, new_code: str) -> bool:
        return self._update(query_id, code=new_code)

    def delete(self, query_id: str) -> bool:
        before = len(self._items)
        self._items = [q for q in self._items if q.id != query_id]
        return len(self._items) != before

    def clear(self) -> None:
        self._items = []

    def _update(self, query_id: str, **changes: Any) -> bool:
        for i, query in enumerate(self._items):
            if query.id == query_id:
                self._items[i] = query.model_copy(update=changes)
                return True
        return False

    def to_snapshot(self) -> list[dict[str, Any]]:
        return [q.model_dump(mode="json") for q in self._items]

    @classmethod
    def from_snapshot(cls, items: Iterable[dict[str, Any]]) -> SavedQueryList:
        return cls(SavedQuery.model_validate(item) for item in items)
