"""Tag vocabulary shared by manual tagging and the auto-tagger."""
from __future__ import annotations

import re
from typing import Iterable, Iterator

from ..models import dedupe

# Starter vocabulary, applied only when no tag library has been persisted yet
DEFAULT_TAGS = ["北森", "系统", "业务", "用户", "日志", "配置", "财务", "企微"]

# ASCII comma, full-width comma, or whitespace
TAG_INPUT_SEPARATOR_RE = re.compile(r"[,，\s]+")


def split_tag_input(text: str) -> list[str]:
    """Split a free-text tag field into individual tags."""
    return dedupe(t.strip() for t in TAG_INPUT_SEPARATOR_RE.split(text or "") if t.strip())


class TagLibrary:
    """Ordered set of tag strings.

    Exact-string matching, no case folding. Only ``remove`` and
    ``replace_all`` ever drop entries.
    """

    def __init__(self, tags: Iterable[str] | None = None):
        self._tags: list[str] = dedupe(tags or [])

    @classmethod
    def with_defaults(cls) -> TagLibrary:
        return cls(DEFAULT_TAGS)

    def __len__(self) -> int:
        return len(self._tags)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tags))

    def __contains__(self, tag: object) -> bool:
        return tag in self._tags

    @property
    def tags(self) -> list[str]:
        return list(self._tags)

    def absorb(self, tags: Iterable[str]) -> list[str]:
        """Append any unseen tags in first-encountered order.

        Returns:
            The tags that were actually added
        """
        added = []
        for tag in tags:
            if tag and tag not in self._tags:
                self._tags.append(tag)
                added.append(tag)
        return added

    def add(self, tag: str) -> bool:
        tag = tag.strip()
        if not tag or tag in self._tags:
            return False
        self._tags.append(tag)
        return True

    def remove(self, tag: str) -> bool:
        if tag not in self._tags:
            return False
        self._tags.remove(tag)
        return True

    def replace_all(self, tags: Iterable[str]) -> None:
        self._tags = dedupe(t for t in tags if t)
