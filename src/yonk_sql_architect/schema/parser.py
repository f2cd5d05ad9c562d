"""Heuristic CREATE TABLE extractor for raw SQL dumps.

Pulls individual table definitions out of pasted text or uploaded dump files
without a SQL grammar:

1. Block comments (``/* ... */``) and line comments (``-- ...``) are stripped
   textually. Comment markers inside string literals are stripped too; this is
   a known limitation.
2. The remaining text is split on ``;``. A semicolon inside a string literal,
   a routine body or a quoted identifier ends the statement early, which is
   acceptable for the dump formats this targets (mysqldump, Navicat exports).
3. Only statements starting with ``CREATE TABLE`` are kept, and only if a
   table name can be captured. Anything else is dropped silently.
"""
from __future__ import annotations

import logging
import re

from ..models import TableDefinition

logger = logging.getLogger(__name__)

BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
LINE_COMMENT_RE = re.compile(r"--.*$", re.MULTILINE)

CREATE_TABLE_PREFIX_RE = re.compile(r"^CREATE\s+TABLE", re.IGNORECASE)

# The schema qualifier group only matches when followed by a literal dot,
# otherwise it would swallow an unqualified table name.
TABLE_NAME_RE = re.compile(
    r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(?:`?[\w-]+`?\.)?`?([\w-]+)`?",
    re.IGNORECASE | re.ASCII,
)


def strip_sql_comments(raw_sql: str) -> str:
    """Remove block and line comments from SQL text."""
    cleaned = BLOCK_COMMENT_RE.sub("", raw_sql)
    return LINE_COMMENT_RE.sub("", cleaned)


def split_statements(sql: str) -> list[str]:
    """Split SQL on semicolons, returning trimmed non-empty statements."""
    return [s.strip() for s in sql.split(";") if s.strip()]


def extract_table_name(statement: str) -> str | None:
    """Extract the unqualified table name from a CREATE TABLE statement.

    Args:
        statement: Statement text starting with CREATE TABLE

    Returns:
        Table name without schema prefix or backticks, or None if no name matched
    """
    match = TABLE_NAME_RE.search(statement)
    if match and match.group(1):
        return match.group(1)
    return None


def parse_sql_schemas(raw_sql: str) -> list[TableDefinition]:
    """Extract CREATE TABLE definitions from raw SQL text.

    Never raises. Returns an empty list when nothing matches; deciding whether
    that is an error is up to the caller.

    Args:
        raw_sql: Arbitrary SQL text (dump file contents, pasted DDL, ...)

    Returns:
        Table definitions in source order, each with a fresh id, no tags and
        the statement text terminated by exactly one semicolon
    """
    definitions: list[TableDefinition] = []

    for statement in split_statements(strip_sql_comments(raw_sql)):
        if not CREATE_TABLE_PREFIX_RE.match(statement):
            continue

        name = extract_table_name(statement)
        if not name:
            continue

        definitions.append(TableDefinition(name=name, ddl=statement + ";"))

    logger.debug(f"Parsed {len(definitions)} CREATE TABLE statements")
    return definitions
