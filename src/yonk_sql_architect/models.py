"""
Pydantic models for table definitions and saved queries.
"""
from __future__ import annotations

import time
from uuid import uuid4

from pydantic import BaseModel, Field


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return str(uuid4())


def now_ms() -> int:
    return int(time.time() * 1000)


class TableDefinition(BaseModel):
    """A single CREATE TABLE statement tracked by the registry."""
    id: str = Field(default_factory=new_id)
    name: str
    ddl: str
    tags: list[str] = Field(default_factory=list)


class SavedQuery(BaseModel):
    """A bookmarked SQL query."""
    id: str = Field(default_factory=new_id)
    name: str
    code: str
    timestamp: int = Field(default_factory=now_ms)


def dedupe(values) -> list[str]:
    """Drop repeated strings, keeping first-seen order."""
    return list(dict.fromkeys(values))
