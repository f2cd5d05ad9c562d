"""Shared pytest fixtures for all tests."""
import pytest

from yonk_sql_architect.models import TableDefinition
from yonk_sql_architect.storage import InMemorySnapshotStore
from yonk_sql_architect.workspace import Workspace


class FakeTaggingOracle:
    """Deterministic tagging oracle.

    Attributes:
        responses: table name -> suggested tags returned whenever that table is in a batch
        fail_batches: 1-based call numbers that raise instead of answering
        calls: (vocabulary, batch) for every call, for assertions
    """

    def __init__(self, responses=None, fail_batches=()):
        self.responses = responses or {}
        self.fail_batches = set(fail_batches)
        self.calls = []

    async def suggest_tags(self, tag_vocabulary, batch):
        self.calls.append((list(tag_vocabulary), list(batch)))
        if len(self.calls) in self.fail_batches:
            raise RuntimeError("oracle unavailable")
        return {
            item["table_name"]: list(self.responses[item["table_name"]])
            for item in batch
            if item["table_name"] in self.responses
        }


class FakeSqlOracle:
    """SQL generation oracle returning a canned answer."""

    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def generate(self, tables, requirement):
        self.calls.append((list(tables), requirement))
        if self.error:
            raise self.error
        return self.answer


SAMPLE_ANSWER = """<!-- TITLE: Orders per user -->
```sql
SELECT
  t1.id AS userId,
  COUNT(t2.id) AS orderCount
FROM users t1
LEFT JOIN orders t2 ON t1.id = t2.uid
GROUP BY t1.id
```
<!-- ANALYSIS_START -->
### Key risks
- orders.uid is not indexed
"""


def make_table(name, tags=None, ddl=None):
    return TableDefinition(
        name=name,
        ddl=ddl or f"CREATE TABLE `{name}` (`id` INT);",
        tags=list(tags or []),
    )


@pytest.fixture
def store():
    return InMemorySnapshotStore()


@pytest.fixture
def tagging_oracle():
    return FakeTaggingOracle()


@pytest.fixture
def sql_oracle():
    return FakeSqlOracle(answer=SAMPLE_ANSWER)


@pytest.fixture
def workspace(store, tagging_oracle, sql_oracle):
    return Workspace(store, tagging_oracle, sql_oracle)
