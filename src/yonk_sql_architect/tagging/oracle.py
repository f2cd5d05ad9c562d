"""
LLM-powered tag suggestion for batches of tables.

The auto-tagger talks to anything implementing ``TaggingOracle``; the default
implementation prompts the configured LLM in JSON mode.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol, TypedDict

from ..llm import call_llm_json

logger = logging.getLogger(__name__)


class TableSummary(TypedDict):
    """Compact description of one table sent to the oracle."""
    table_name: str
    schema_summary: str


class TaggingOracleError(Exception):
    """The oracle call failed or its response could not be parsed."""


class TaggingOracle(Protocol):
    async def suggest_tags(
        self,
        tag_vocabulary: list[str],
        batch: list[TableSummary],
    ) -> dict[str, Any]:
        """Return a mapping of table name to suggested tags for one batch."""
        ...


def build_tagging_prompt(tag_vocabulary: list[str], batch: list[TableSummary]) -> str:
    """Build the tag suggestion prompt for one batch of tables."""
    library = ", ".join(tag_vocabulary) if tag_vocabulary else "(no preset tags)"
    summaries = "\n---\n".join(
        f"Table: {item['table_name']}\nColumns/Keywords: {item['schema_summary']}"
        for item in batch
    )

    return f"""You are an experienced database administrator. Analyze the names and structure of the database tables below and pick the most fitting tags from the TAG LIBRARY.

Rules:
1. Prefer the tag library: use only tags that already exist in the TAG LIBRARY whenever possible.
2. Be selective: give each table 0-3 tags. Only tag strong matches; if nothing fits, return an empty array for that table.
3. Output format: pure JSON only, shaped like {{"tableName": ["tag1", "tag2"]}}

TAG LIBRARY:
{library}

Table summaries (batch):
{summaries}
"""


class LlmTaggingOracle:
    """Tagging oracle backed by the shared LLM client."""

    def __init__(self, config_override: dict[str, Any] | None = None):
        self.config_override = config_override

    async def suggest_tags(
        self,
        tag_vocabulary: list[str],
        batch: list[TableSummary],
    ) -> dict[str, Any]:
        prompt = build_tagging_prompt(tag_vocabulary, batch)
        result = await call_llm_json(prompt, config_override=self.config_override)

        if result is None:
            raise TaggingOracleError("No parseable response from LLM")
        if not isinstance(result, dict):
            raise TaggingOracleError(f"Expected a JSON object, got {type(result).__name__}")

        logger.debug(f"Tag suggestions received for {len(result)} tables")
        return result
