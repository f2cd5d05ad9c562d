"""Natural-language to SQL generation."""
from __future__ import annotations

from .sql_generator import (
    ANALYSIS_SEPARATOR,
    GeneratedSql,
    LlmSqlGenerator,
    SqlGenerationOracle,
    build_generation_prompt,
    build_schema_context,
    generate_sql,
    parse_generation_response,
)

__all__ = [
    "ANALYSIS_SEPARATOR",
    "GeneratedSql",
    "LlmSqlGenerator",
    "SqlGenerationOracle",
    "build_generation_prompt",
    "build_schema_context",
    "generate_sql",
    "parse_generation_response",
]
