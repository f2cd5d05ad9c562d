"""
Natural-language to SQL generation over the registered tables.

The LLM answers with a title marker, a fenced SQL block and an optional
analysis section, e.g.:

    <!-- TITLE: Paid orders per user -->
    ```sql
    SELECT ...
    ```
    <!-- ANALYSIS_START -->
    ### Key risks
    ...
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

from ..llm import call_llm
from ..models import TableDefinition
from ..results import ErrorKind, Result

logger = logging.getLogger(__name__)

TITLE_RE = re.compile(r"<!-- TITLE: (.*?) -->")
TITLE_LINE_RE = re.compile(r"<!-- TITLE: .*? -->\n?")
ANALYSIS_SEPARATOR = "<!-- ANALYSIS_START -->"
SQL_BLOCK_RE = re.compile(r"```sql\s*([\s\S]*?)```", re.IGNORECASE)

SYSTEM_INSTRUCTION = """You are a senior database architect with deep MySQL expertise.
Your job is to write high-quality, high-performance SQL for the user's natural-language requirement, based on the table structures (DDL) provided.

Follow these style and output rules strictly:

1. SQL style:
   - Column aliases: always camelCase (e.g. `userName`, `createTime`).
   - Table aliases: t1, t2, t3... in order of appearance (e.g. `FROM users t1 JOIN orders t2 ON ...`).
   - Comments: no obvious or redundant comments. Complex join logic, special filter conditions and implicit business rules MUST get a short comment.
   - Performance first: avoid `SELECT *`, select only the columns needed, avoid functions on indexed columns.

2. Output format:
   - Title line: the first line must name the query as `<!-- TITLE: short title -->`.
   - SQL block: directly after the title line, wrap the SQL in a Markdown ```sql code block.
   - Analysis separator: after the SQL block, emit exactly one line `<!-- ANALYSIS_START -->`.
   - Structured analysis: after the separator, group advice under H3 headings:
     - `### Key risks`
     - `### Optimization suggestions`
     - `### Logic explanation`

3. Business awareness: use the [Tags] of each table to understand the business domain.

Example SQL style:
```sql
SELECT
  t1.user_id AS userId,
  t1.user_name AS userName,
  -- only paid orders (status=1)
  COUNT(t2.order_id) AS orderCount
FROM users t1
LEFT JOIN orders t2 ON t1.id = t2.user_id AND t2.status = 1
GROUP BY t1.id
```
"""


class SqlGenerationOracle(Protocol):
    async def generate(self, tables: list[TableDefinition], requirement: str) -> str | None:
        """Return the formatted answer text, or None when generation failed."""
        ...


@dataclass
class GeneratedSql:
    """Generation output split into its display parts."""
    raw: str
    title: str | None
    body: str
    analysis: str | None
    sql: str | None


def build_schema_context(tables: list[TableDefinition]) -> str:
    """Render tables (with tags) as prompt context."""
    blocks = []
    for table in tables:
        tags_info = f" [Tags: {', '.join(table.tags)}]" if table.tags else ""
        blocks.append(f"Table: {table.name}{tags_info}\nDDL:\n{table.ddl}")
    return "\n\n".join(blocks)


def build_generation_prompt(tables: list[TableDefinition], requirement: str) -> str:
    return f"""
The following MySQL tables exist:
{build_schema_context(tables)}

---
User requirement:
{requirement}

---
Give the best SQL and a brief analysis.
"""


def parse_generation_response(text: str) -> GeneratedSql:
    """Split generated text into title, SQL body and analysis."""
    title_match = TITLE_RE.search(text)
    title = title_match.group(1).strip() if title_match else None

    content = TITLE_LINE_RE.sub("", text, count=1)
    body, sep, analysis = content.partition(ANALYSIS_SEPARATOR)

    sql_match = SQL_BLOCK_RE.search(body)
    return GeneratedSql(
        raw=text,
        title=title,
        body=body.strip(),
        analysis=analysis.strip() if sep else None,
        sql=sql_match.group(1).strip() if sql_match else None,
    )


class LlmSqlGenerator:
    """SQL generation oracle backed by the shared LLM client."""

    def __init__(self, config_override: dict[str, Any] | None = None):
        self.config_override = config_override

    async def generate(self, tables: list[TableDefinition], requirement: str) -> str | None:
        prompt = build_generation_prompt(tables, requirement)
        return await call_llm(prompt, system=SYSTEM_INSTRUCTION, config_override=self.config_override)


async def generate_sql(
    oracle: SqlGenerationOracle,
    tables: list[TableDefinition],
    requirement: str,
) -> Result[GeneratedSql]:
    """Ask the oracle for SQL satisfying ``requirement``.

    Returns:
        Result with the parsed answer, NO_TABLES when nothing is imported, or
        ORACLE_UNAVAILABLE when the oracle failed or returned nothing. Failures
        are not retried.
    """
    if not tables:
        return Result.failure(
            ErrorKind.NO_TABLES,
            "Import at least one table structure first so the database schema is known.",
        )

    try:
        text = await oracle.generate(tables, requirement)
    except Exception as e:
        logger.error(f"SQL generation failed: {e}")
        text = None

    if not text:
        return Result.failure(
            ErrorKind.ORACLE_UNAVAILABLE,
            "SQL generation failed, check the network connection or API key settings.",
        )

    return Result.success(parse_generation_response(text))
