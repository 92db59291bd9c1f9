"""
MongoDB document store.

Each external table is a collection of the same name. The "id" field is
the application key; Mongo's own "_id" is stripped from every document
returned.
"""

from __future__ import annotations

import logging
from typing import Any

from pymongo.errors import PyMongoError

from .base import Document, Query, SortSpec, StoreError

logger = logging.getLogger(__name__)


def _strip_id(doc: dict[str, Any] | None) -> Document | None:
    if doc is None:
        return None
    doc.pop("_id", None)
    return doc


class MongoStore:
    """
    motor-backed implementation of DocumentStore.

    Example:
        store = MongoStore("mongodb://localhost:27017", "mondayease")
        await store.connect()
    """

    def __init__(self, mongodb_url: str, database_name: str = "mondayease"):
        """
        Initialize MongoDB store.

        Args:
            mongodb_url: MongoDB connection URL
            database_name: Database name
        """
        self._mongodb_url = mongodb_url
        self._database_name = database_name
        self._client = None
        self._db = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    async def connect(self) -> None:
        """Connect to MongoDB."""
        from motor.motor_asyncio import AsyncIOMotorClient

        self._client = AsyncIOMotorClient(self._mongodb_url)
        self._db = self._client[self._database_name]
        logger.info(f"[store] Connected to MongoDB database: {self._database_name}")

    async def close(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._db = None

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            logger.warning(f"[store] MongoDB ping failed: {e}")
            return False
        return True

    async def _collection(self, table: str):
        if not self.is_connected:
            await self.connect()
        return self._db[table]

    async def insert(self, table: str, doc: Document) -> Document:
        collection = await self._collection(table)
        try:
            await collection.insert_one(dict(doc))
        except PyMongoError as e:
            raise StoreError(f"insert into {table} failed: {e}") from e
        return dict(doc)

    async def find(
        self,
        table: str,
        query: Query | None = None,
        *,
        sort: SortSpec | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        collection = await self._collection(table)
        cursor = collection.find(query or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit is not None:
            cursor = cursor.limit(limit)

        docs = []
        try:
            async for doc in cursor:
                docs.append(_strip_id(doc))
        except PyMongoError as e:
            raise StoreError(f"find in {table} failed: {e}") from e
        return docs

    async def find_one(self, table: str, query: Query) -> Document | None:
        collection = await self._collection(table)
        try:
            doc = await collection.find_one(query)
        except PyMongoError as e:
            raise StoreError(f"find_one in {table} failed: {e}") from e
        return _strip_id(doc)

    async def update(self, table: str, query: Query, fields: Document) -> int:
        collection = await self._collection(table)
        try:
            result = await collection.update_many(query, {"$set": fields})
        except PyMongoError as e:
            raise StoreError(f"update of {table} failed: {e}") from e
        return result.matched_count

    async def upsert(self, table: str, query: Query, doc: Document) -> Document:
        collection = await self._collection(table)
        fields = {k: v for k, v in doc.items() if k != "id"}
        try:
            await collection.update_one(
                query,
                {"$set": fields, "$setOnInsert": {"id": doc["id"]}},
                upsert=True,
            )
        except PyMongoError as e:
            raise StoreError(f"upsert into {table} failed: {e}") from e
        return await self.find_one(table, query)

    async def delete(self, table: str, query: Query) -> int:
        collection = await self._collection(table)
        try:
            result = await collection.delete_many(query)
        except PyMongoError as e:
            raise StoreError(f"delete from {table} failed: {e}") from e
        return result.deleted_count
