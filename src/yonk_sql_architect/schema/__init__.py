"""Schema ingestion: CREATE TABLE extraction and the table registry."""
from __future__ import annotations

from .parser import (
    parse_sql_schemas,
    strip_sql_comments,
    split_statements,
    extract_table_name,
)
from .registry import TableRegistry

__all__ = [
    "parse_sql_schemas",
    "strip_sql_comments",
    "split_statements",
    "extract_table_name",
    "TableRegistry",
]
