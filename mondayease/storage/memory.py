"""
In-memory document store.

Used by the test suite and for local development without MongoDB.
Documents are deep-copied on the way in and out so callers cannot mutate
stored state by accident.
"""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from typing import Any

from .base import DESCENDING, Document, Query, SortSpec

logger = logging.getLogger(__name__)


def _matches(doc: Document, query: Query) -> bool:
    for key, expected in query.items():
        actual = doc.get(key)
        if isinstance(expected, dict) and expected.keys() <= {"$in", "$ne"}:
            if "$in" in expected and actual not in expected["$in"]:
                return False
            if "$ne" in expected and actual == expected["$ne"]:
                return False
        elif actual != expected:
            return False
    return True


def _sort_key(field_name: str):
    def key(doc: Document) -> tuple[bool, Any]:
        value = doc.get(field_name)
        # None sorts before any value when ascending
        return (value is not None, value)

    return key


class InMemoryStore:
    """
    Dict-backed implementation of DocumentStore.

    Example:
        store = InMemoryStore()
        await store.insert("clients", {"id": "c1", "slug": "acme"})
        doc = await store.find_one("clients", {"slug": "acme"})
    """

    def __init__(self) -> None:
        self._tables: dict[str, list[Document]] = defaultdict(list)

    async def connect(self) -> None:
        logger.info("[store] Using in-memory store")

    async def close(self) -> None:
        return None

    async def ping(self) -> bool:
        return True

    async def insert(self, table: str, doc: Document) -> Document:
        stored = copy.deepcopy(doc)
        self._tables[table].append(stored)
        return copy.deepcopy(stored)

    async def find(
        self,
        table: str,
        query: Query | None = None,
        *,
        sort: SortSpec | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        results = [d for d in self._tables[table] if _matches(d, query or {})]

        # Apply sort keys from least to most significant (stable sort)
        for field_name, direction in reversed(sort or []):
            results.sort(key=_sort_key(field_name), reverse=direction == DESCENDING)

        if limit is not None:
            results = results[:limit]
        return [copy.deepcopy(d) for d in results]

    async def find_one(self, table: str, query: Query) -> Document | None:
        for doc in self._tables[table]:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def update(self, table: str, query: Query, fields: Document) -> int:
        count = 0
        for doc in self._tables[table]:
            if _matches(doc, query):
                doc.update(copy.deepcopy(fields))
                count += 1
        return count

    async def upsert(self, table: str, query: Query, doc: Document) -> Document:
        for existing in self._tables[table]:
            if _matches(existing, query):
                fields = {k: v for k, v in doc.items() if k != "id"}
                existing.update(copy.deepcopy(fields))
                return copy.deepcopy(existing)
        return await self.insert(table, doc)

    async def delete(self, table: str, query: Query) -> int:
        rows = self._tables[table]
        kept = [d for d in rows if not _matches(d, query)]
        deleted = len(rows) - len(kept)
        self._tables[table] = kept
        return deleted

    def count(self, table: str) -> int:
        """Get number of documents in a table (for testing)."""
        return len(self._tables[table])
