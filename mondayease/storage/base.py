"""
Document store protocol.

The repository layer talks to storage through this small table-oriented
interface so the backend can be swapped:

    - Testing / development: InMemoryStore
    - Production: MongoStore (motor)

Queries are equality dicts. Two operators are understood by every backend:

    {"field": {"$in": [a, b]}}   # membership
    {"field": {"$ne": value}}    # inequality

Documents are plain dicts keyed by an "id" string field.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

Document = dict[str, Any]
Query = dict[str, Any]
SortSpec = list[tuple[str, int]]

ASCENDING = 1
DESCENDING = -1


class StoreError(Exception):
    """Raised when the storage backend fails."""


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for table storage backends."""

    async def connect(self) -> None:
        """Open connections, if the backend needs any."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...

    async def ping(self) -> bool:
        """True when the backend is reachable."""
        ...

    async def insert(self, table: str, doc: Document) -> Document:
        """Insert a document and return it."""
        ...

    async def find(
        self,
        table: str,
        query: Query | None = None,
        *,
        sort: SortSpec | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        """Return all documents matching `query`."""
        ...

    async def find_one(self, table: str, query: Query) -> Document | None:
        """Return the first matching document, or None."""
        ...

    async def update(self, table: str, query: Query, fields: Document) -> int:
        """Set `fields` on every matching document. Returns the match count."""
        ...

    async def upsert(self, table: str, query: Query, doc: Document) -> Document:
        """
        Update the document matching `query`, or insert `doc` if none does.

        On update, the existing "id" is preserved.
        """
        ...

    async def delete(self, table: str, query: Query) -> int:
        """Delete matching documents. Returns the deleted count."""
        ...
