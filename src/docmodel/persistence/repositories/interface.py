"""
Document Store Interface

💾 Standard Data Access Contract:
Every storage backend implements this interface. Filters and updates are
Mongo-shaped dictionaries (`{"parent._id": "p1"}`, `{"$set": {...}}`) passed
through unchanged, so the cascade engine never depends on a concrete driver.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union
from enum import Enum

from ...entities.indexes import IndexSpec

Filter = Dict[str, Any]
Update = Dict[str, Any]
RawDocument = Dict[str, Any]


class QueryOperator(Enum):
    """Query operators understood inside a filter"""
    EQUALS = "$eq"
    NOT_EQUALS = "$ne"
    GREATER_THAN = "$gt"
    GREATER_THAN_OR_EQUAL = "$gte"
    LESS_THAN = "$lt"
    LESS_THAN_OR_EQUAL = "$lte"
    IN = "$in"
    NOT_IN = "$nin"
    EXISTS = "$exists"


class SortDirection(Enum):
    """Sort direction for ordering"""
    ASC = 1
    DESC = -1


SortSpec = List[Tuple[str, Union[SortDirection, int]]]


def sort_value(direction: Union[SortDirection, int]) -> int:
    """Normalize a sort direction to 1 / -1"""
    if isinstance(direction, SortDirection):
        return direction.value
    return -1 if direction < 0 else 1


class DocumentStore(ABC):
    """
    Abstract document store.

    All methods are coroutines; each call borrows the underlying connection
    for its own duration only.
    """

    @abstractmethod
    async def initialize(self):
        """Open connections / allocate resources"""
        pass

    @abstractmethod
    async def shutdown(self):
        """Release connections / resources"""
        pass

    @abstractmethod
    async def save_document(self, collection: str, document: RawDocument) -> str:
        """
        Insert or replace a document by its `_id`.

        Args:
            collection: Collection name
            document: Wire document; must carry `_id`

        Returns:
            The document id
        """
        pass

    @abstractmethod
    async def find_one(self, collection: str, query: Filter) -> Optional[RawDocument]:
        """First document matching `query`, or None"""
        pass

    @abstractmethod
    async def find(self, collection: str, query: Filter,
                   sort: Optional[SortSpec] = None,
                   skip: int = 0,
                   limit: Optional[int] = None) -> List[RawDocument]:
        """
        All documents matching `query`.

        Args:
            collection: Collection name
            query: Filter document
            sort: List of (field, direction) pairs
            skip: Number of matches to skip
            limit: Maximum number of documents returned

        Returns:
            Matching wire documents
        """
        pass

    @abstractmethod
    async def count(self, collection: str, query: Filter) -> int:
        pass

    @abstractmethod
    async def delete_one(self, collection: str, query: Filter) -> int:
        """Delete the first match; returns the number removed (0 or 1)"""
        pass

    @abstractmethod
    async def delete_many(self, collection: str, query: Filter) -> int:
        pass

    @abstractmethod
    async def update_where(self, collection: str, query: Filter, update: Update) -> int:
        """
        Apply a partial update to every document matching `query`.

        Args:
            collection: Collection name
            query: Filter document
            update: Update document (`$set` / `$unset`)

        Returns:
            Number of matched documents
        """
        pass

    @abstractmethod
    async def upsert_array_element_by_id(self, collection: str, query: Filter,
                                         array_path: str, element_id: Any,
                                         element: RawDocument,
                                         id_key: str = "_id") -> int:
        """
        In each matching document, replace the array element whose `id_key`
        equals `element_id` in place, or append `element` when none does.

        Returns:
            Number of matched documents
        """
        pass

    @abstractmethod
    async def remove_array_element_by_id(self, collection: str, query: Filter,
                                         array_path: str, element_id: Any,
                                         id_key: str = "_id") -> int:
        """Remove the array element keyed by `element_id` from every match"""
        pass

    @abstractmethod
    async def ensure_index(self, collection: str, index: IndexSpec) -> None:
        """Create an index if it does not exist yet"""
        pass

    @abstractmethod
    async def get_metrics(self) -> Dict[str, Any]:
        pass


__all__ = [
    "DocumentStore", "QueryOperator", "SortDirection", "SortSpec",
    "Filter", "Update", "RawDocument", "sort_value",
]
