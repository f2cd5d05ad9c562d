"""
Batched auto-tagging of registered tables.

Tables are sent to the tagging oracle in small batches, one batch at a time.
A failing batch is logged and skipped; suggestions from the batches that did
succeed are merged into the registry once every batch has been attempted.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..models import TableDefinition, dedupe
from ..results import ErrorKind, Result
from ..schema.registry import TableRegistry
from .library import TagLibrary
from .oracle import TableSummary, TaggingOracle

logger = logging.getLogger(__name__)

BATCH_SIZE = 5
MAX_TAGS_PER_TABLE = 3
MAX_SUMMARY_TOKENS = 100
FALLBACK_SUMMARY_CHARS = 500

BACKTICK_TOKEN_RE = re.compile(r"`[^`]+`")


def summarize_schema(ddl: str) -> str:
    """Build a compact schema summary for the tagging prompt.

    Backtick-quoted tokens (table and column identifiers in MySQL dumps) are
    kept, up to the first 100. DDL without backticks falls back to its first
    500 characters on a single line.
    """
    tokens = BACKTICK_TOKEN_RE.findall(ddl)
    if tokens:
        return ", ".join(tokens[:MAX_SUMMARY_TOKENS])
    return ddl[:FALLBACK_SUMMARY_CHARS].replace("\n", " ")


def chunked(items: list[TableDefinition], size: int) -> list[list[TableDefinition]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def normalize_suggestions(
    raw: dict[str, Any],
    table_names: Iterable[str],
    max_tags: int = MAX_TAGS_PER_TABLE,
) -> dict[str, list[str]]:
    """Keep only well-formed suggestions for tables that were in the batch.

    Values that are not lists are ignored, entries are coerced to stripped
    strings and each list is cut to ``max_tags``.
    """
    names = set(table_names)
    normalized: dict[str, list[str]] = {}
    for name, tags in raw.items():
        if name not in names:
            logger.debug(f"Ignoring suggestion for table outside the batch: {name}")
            continue
        if not isinstance(tags, list):
            continue
        cleaned = dedupe(str(t).strip() for t in tags if str(t).strip())
        normalized[name] = cleaned[:max_tags]
    return normalized


def merge_suggested_tags(
    current: list[str],
    suggested: list[str],
    max_tags: int = MAX_TAGS_PER_TABLE,
) -> list[str]:
    """Current tags followed by unseen suggestions, cut to ``max_tags``.

    Current tags come first, so they outrank suggestions for the slots under
    the cap. A table already above the cap is cut down to it.
    """
    return dedupe([*current, *suggested])[:max_tags]


@dataclass
class AutoTagReport:
    """Outcome of one auto-tagging run."""
    batches_total: int = 0
    batches_failed: int = 0
    tables_updated: list[str] = field(default_factory=list)
    tags_absorbed: list[str] = field(default_factory=list)


class AutoTagBatchCoordinator:
    """Runs the tagging oracle over tables in sequential batches.

    Only one run may be in flight at a time; a second ``run`` while one is
    still awaiting the oracle is rejected with ``TAGGING_IN_PROGRESS``.
    """

    def __init__(
        self,
        registry: TableRegistry,
        oracle: TaggingOracle,
        batch_size: int = BATCH_SIZE,
        max_tags: int = MAX_TAGS_PER_TABLE,
    ):
        self.registry = registry
        self.oracle = oracle
        self.batch_size = batch_size
        self.max_tags = max_tags
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    async def run(
        self,
        tables: Iterable[TableDefinition],
        tag_library: TagLibrary,
    ) -> Result[AutoTagReport]:
        """Suggest tags for ``tables`` and merge them into the registry.

        Args:
            tables: Tables to tag, usually the whole registry
            tag_library: Vocabulary offered to the oracle; applied suggestions
                are absorbed into it

        Returns:
            Result with an AutoTagReport. Fails with TAGGING_IN_PROGRESS when a
            run is already active, and with ORACLE_BATCH_FAILURE (still carrying
            the report) when every batch failed.
        """
        if self._in_progress:
            logger.warning("Auto-tagging already in progress, rejecting new run")
            return Result.failure(ErrorKind.TAGGING_IN_PROGRESS, "Auto-tagging is already running")

        # Set before the first await so overlapping callers see it
        self._in_progress = True
        try:
            return await self._run(list(tables), tag_library)
        finally:
            self._in_progress = False

    async def _run(self, tables: list[TableDefinition], tag_library: TagLibrary) -> Result[AutoTagReport]:
        report = AutoTagReport()
        if not tables:
            return Result.success(report, "No tables to tag")

        vocabulary = tag_library.tags
        batches = chunked(tables, self.batch_size)
        report.batches_total = len(batches)
        suggestions: dict[str, list[str]] = {}

        logger.info(f"Auto-tagging {len(tables)} tables in {len(batches)} batches")

        for index, batch in enumerate(batches, 1):
            summaries: list[TableSummary] = [
                {"table_name": t.name, "schema_summary": summarize_schema(t.ddl)}
                for t in batch
            ]
            try:
                raw = await self.oracle.suggest_tags(vocabulary, summaries)
                if not isinstance(raw, dict):
                    raise TypeError(f"expected a mapping, got {type(raw).__name__}")
                batch_suggestions = normalize_suggestions(raw, (t.name for t in batch), self.max_tags)
                suggestions.update(batch_suggestions)
                logger.info(f"Batch {index}/{len(batches)}: suggestions for {len(batch_suggestions)} tables")
            except Exception as e:
                report.batches_failed += 1
                logger.error(f"Batch {index}/{len(batches)} auto-tagging failed: {e}")

        report.tables_updated, report.tags_absorbed = self.apply_suggestions(
            [t.name for t in tables], suggestions, tag_library
        )

        logger.info(
            f"Auto-tagging done: {len(report.tables_updated)} tables updated, "
            f"{report.batches_failed}/{report.batches_total} batches failed"
        )

        if report.batches_failed and report.batches_failed == report.batches_total:
            return Result(
                value=report,
                error=ErrorKind.ORACLE_BATCH_FAILURE,
                message="Tag suggestion failed for every batch",
            )
        message = ""
        if report.batches_failed:
            message = f"{report.batches_failed} of {report.batches_total} batches failed"
        return Result.success(report, message)

    def apply_suggestions(
        self,
        table_names: list[str],
        suggestions: dict[str, list[str]],
        tag_library: TagLibrary,
    ) -> tuple[list[str], list[str]]:
        """Merge suggestions into the registry's current tags.

        Every table of the run goes through the merge, so tables without a
        suggestion are still cut to the tag cap. Runs without awaiting, so it
        reads each table's tags as they are now, including edits made while
        the oracle calls were in flight.

        Returns:
            (names of updated tables, tags newly added to the library)
        """
        updated = []
        applied_tags = []
        for name in table_names:
            table = self.registry.get_by_name(name)
            if table is None:
                continue
            merged = merge_suggested_tags(table.tags, suggestions.get(name, []), self.max_tags)
            if merged != table.tags:
                self.registry.update_tags(table.id, merged)
                updated.append(name)
                applied_tags.extend(t for t in merged if t not in table.tags)

        return updated, tag_library.absorb(applied_tags)
