"""Tag vocabulary and LLM-assisted auto-tagging of tables."""
from __future__ import annotations

from .library import DEFAULT_TAGS, TagLibrary, split_tag_input
from .oracle import (
    LlmTaggingOracle,
    TableSummary,
    TaggingOracle,
    TaggingOracleError,
    build_tagging_prompt,
)
from .auto_tagger import (
    AutoTagBatchCoordinator,
    AutoTagReport,
    merge_suggested_tags,
    normalize_suggestions,
    summarize_schema,
)

__all__ = [
    "DEFAULT_TAGS",
    "TagLibrary",
    "split_tag_input",
    "LlmTaggingOracle",
    "TableSummary",
    "TaggingOracle",
    "TaggingOracleError",
    "build_tagging_prompt",
    "AutoTagBatchCoordinator",
    "AutoTagReport",
    "merge_suggested_tags",
    "normalize_suggestions",
    "summarize_schema",
]
