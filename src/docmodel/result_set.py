"""
Result Set - Lazy Query Results

Returned by Collection.find(). Nothing is read until the set is iterated or
awaited through all() / first() / count().

    async for child in connection.find(Child, {"parent_id": parent.id}).sort("-_created").limit(10):
        ...
"""

from typing import TYPE_CHECKING, AsyncIterator, Generic, List, Optional, Tuple, Type, Union

from .entities.document import DocumentType
from .persistence.repositories.interface import Filter, SortDirection

if TYPE_CHECKING:
    from .collection import Collection

SortField = Union[str, Tuple[str, Union[SortDirection, int]]]


class ResultSet(Generic[DocumentType]):
    """Chainable query over one collection"""

    def __init__(self, collection: "Collection", document_class: Type[DocumentType],
                 query: Optional[Filter] = None):
        self.collection = collection
        self.document_class = document_class
        self.query: Filter = dict(query or {})
        self._sort: List[Tuple[str, SortDirection]] = []
        self._skip = 0
        self._limit: Optional[int] = None

    def limit(self, limit: int) -> "ResultSet[DocumentType]":
        self._limit = limit
        return self

    def skip(self, skip: int) -> "ResultSet[DocumentType]":
        self._skip = skip
        return self

    def sort(self, *fields: SortField) -> "ResultSet[DocumentType]":
        """
        Add sort keys.

        Args:
            *fields: "name" / "-name" (descending) or (path, direction) pairs
        """
        for entry in fields:
            if isinstance(entry, tuple):
                path, direction = entry
                if not isinstance(direction, SortDirection):
                    direction = SortDirection.DESC if direction < 0 else SortDirection.ASC
            elif entry.startswith("-"):
                path, direction = entry[1:], SortDirection.DESC
            else:
                path, direction = entry.lstrip("+"), SortDirection.ASC
            self._sort.append((path, direction))
        return self

    async def count(self) -> int:
        """Number of documents matching the query (skip / limit ignored)"""
        return await self.collection.store.count(self.collection.name, self.query)

    async def all(self) -> List[DocumentType]:
        return [document async for document in self]

    async def first(self) -> Optional[DocumentType]:
        raw = await self.collection.store.find(
            self.collection.name, self.query, sort=self._sort or None, skip=self._skip, limit=1
        )
        if not raw:
            return None
        return await self.collection.load(self.document_class, raw[0])

    async def __aiter__(self) -> AsyncIterator[DocumentType]:
        raw_documents = await self.collection.store.find(
            self.collection.name,
            self.query,
            sort=self._sort or None,
            skip=self._skip,
            limit=self._limit,
        )
        for raw in raw_documents:
            yield await self.collection.load(self.document_class, raw)


__all__ = ["ResultSet", "SortField"]
