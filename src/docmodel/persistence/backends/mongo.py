"""
Mongo Document Store - MongoDB via Motor

Async MongoDB backend. Driver failures are wrapped in StorageError; every
read carries a server-side time limit taken from the persistence config.
"""

from typing import Any, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from ...entities.indexes import IndexSpec
from ...errors import StorageError
from ..repositories.base import BaseDocumentStore
from ..repositories.interface import Filter, RawDocument, SortSpec, Update, sort_value


class MongoDocumentStore(BaseDocumentStore):
    """
    MongoDB document store.

    Usage:
        store = MongoDocumentStore("mongodb://localhost:27017", "app")
        await store.initialize()
    """

    def __init__(self,
                 url: str = "mongodb://localhost:27017",
                 database: str = "docmodel",
                 timeout_ms: int = 5000,
                 client: Optional[AsyncIOMotorClient] = None):
        super().__init__(url=url, database=database, timeout_ms=timeout_ms)
        self.url = url
        self.database_name = database
        self.timeout_ms = timeout_ms
        self._client = client
        self._owns_client = client is None
        self._db: Optional[AsyncIOMotorDatabase] = None

    async def _do_initialize(self):
        if self._client is None:
            self._client = AsyncIOMotorClient(self.url, serverSelectionTimeoutMS=self.timeout_ms)
        self._db = self._client[self.database_name]
        try:
            await self._db.command("ping")
        except PyMongoError as e:
            raise StorageError(f"Cannot reach MongoDB at {self.url}: {e}") from e
        self._logger.info(f"Connected to MongoDB database '{self.database_name}'")

    async def _do_shutdown(self):
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self._db = None

    def _col(self, name: str) -> AsyncIOMotorCollection:
        if self._db is None:
            raise StorageError(f"{self.__class__.__name__} is not initialized")
        return self._db[name]

    async def _call(self, operation: str, awaitable) -> Any:
        try:
            return await self._measure(operation, awaitable)
        except PyMongoError as e:
            raise StorageError(f"{operation} failed: {e}") from e

    async def save_document(self, collection: str, document: RawDocument) -> str:
        document_id = self._document_id(document)
        await self._call(
            "save_document",
            self._col(collection).replace_one({"_id": document_id}, dict(document), upsert=True),
        )
        self._logger.debug(f"Saved {collection}/{document_id}")
        return document_id

    async def find_one(self, collection: str, query: Filter) -> Optional[RawDocument]:
        return await self._call(
            "find_one", self._col(collection).find_one(query, max_time_ms=self.timeout_ms)
        )

    async def find(self, collection: str, query: Filter,
                   sort: Optional[SortSpec] = None,
                   skip: int = 0,
                   limit: Optional[int] = None) -> List[RawDocument]:
        cursor = self._col(collection).find(query).max_time_ms(self.timeout_ms)
        if sort:
            cursor = cursor.sort([(path, sort_value(direction)) for path, direction in sort])
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return await self._call("find", cursor.to_list(length=None))

    async def count(self, collection: str, query: Filter) -> int:
        return await self._call(
            "count", self._col(collection).count_documents(query, maxTimeMS=self.timeout_ms)
        )

    async def delete_one(self, collection: str, query: Filter) -> int:
        result = await self._call("delete_one", self._col(collection).delete_one(query))
        return result.deleted_count

    async def delete_many(self, collection: str, query: Filter) -> int:
        result = await self._call("delete_many", self._col(collection).delete_many(query))
        return result.deleted_count

    async def update_where(self, collection: str, query: Filter, update: Update) -> int:
        result = await self._call("update_where", self._col(collection).update_many(query, update))
        self._logger.debug(f"Updated {result.matched_count} document(s) in {collection}")
        return result.matched_count

    async def upsert_array_element_by_id(self, collection: str, query: Filter,
                                         array_path: str, element_id: Any,
                                         element: RawDocument,
                                         id_key: str = "_id") -> int:
        col = self._col(collection)
        element_key = f"{array_path}.{id_key}"

        # $push needs an array, a null or missing property is replaced first
        await self._call(
            "upsert_array_element_by_id",
            col.update_many({"$and": [query, {array_path: None}]}, {"$set": {array_path: []}}),
        )
        replaced = await self._call(
            "upsert_array_element_by_id",
            col.update_many(
                {"$and": [query, {element_key: element_id}]},
                {"$set": {f"{array_path}.$": dict(element)}},
            ),
        )
        appended = await self._call(
            "upsert_array_element_by_id",
            col.update_many(
                {"$and": [query, {element_key: {"$ne": element_id}}]},
                {"$push": {array_path: dict(element)}},
            ),
        )
        return replaced.matched_count + appended.matched_count

    async def remove_array_element_by_id(self, collection: str, query: Filter,
                                         array_path: str, element_id: Any,
                                         id_key: str = "_id") -> int:
        result = await self._call(
            "remove_array_element_by_id",
            self._col(collection).update_many(query, {"$pull": {array_path: {id_key: element_id}}}),
        )
        return result.matched_count

    async def ensure_index(self, collection: str, index: IndexSpec) -> None:
        await self._call(
            "ensure_index",
            self._col(collection).create_index(
                index.keys(),
                name=index.name,
                unique=index.unique,
                sparse=index.sparse,
                background=index.background,
            ),
        )
        self._logger.debug(f"Ensured index {index.name} on {collection}")


__all__ = ["MongoDocumentStore"]
