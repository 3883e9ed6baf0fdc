"""
Memory Document Store - Fast In-Memory Storage

⚡ High-Performance Memory Storage:
Dictionary backed store that understands the same filter and update
documents as the Mongo backend. Every document is deep-copied on the way in
and out, so callers never share state with the store.

Features:
- Dotted-path filters, including paths through arrays of sub-documents
- $eq $ne $gt $gte $lt $lte $in $nin $exists, $and / $or
- $set / $unset updates, in-place array upserts
- Unique indexes enforced on save
"""

from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional
import copy

from ...entities.indexes import IndexSpec
from ...errors import StorageError
from ..repositories.base import BaseDocumentStore
from ..repositories.interface import (
    Filter, QueryOperator, RawDocument, SortSpec, Update, sort_value,
)

_MISSING = object()


def resolve_path(value: Any, path: str) -> List[Any]:
    """
    Every value reachable through a dotted path.

    Arrays are traversed element-wise, so "children._id" yields the id of
    every child. An unresolvable path yields an empty list.
    """
    return _resolve(value, path.split("."))


def _resolve(value: Any, segments: List[str]) -> List[Any]:
    if not segments:
        return [value]
    head, rest = segments[0], segments[1:]
    if isinstance(value, Mapping):
        if head not in value:
            return []
        return _resolve(value[head], rest)
    if isinstance(value, list):
        if head.isdigit():
            index = int(head)
            return _resolve(value[index], rest) if index < len(value) else []
        found: List[Any] = []
        for item in value:
            found.extend(_resolve(item, segments))
        return found
    return []


def _equals(candidate: Any, expected: Any) -> bool:
    if candidate == expected:
        return True
    return isinstance(candidate, list) and not isinstance(expected, list) and expected in candidate


def _compare(candidates: List[Any], expected: Any, check) -> bool:
    for candidate in candidates:
        if candidate is None:
            continue
        try:
            if check(candidate, expected):
                return True
        except TypeError:
            continue
    return False


def _matches_condition(candidates: List[Any], condition: Any) -> bool:
    is_operator_doc = (
        isinstance(condition, Mapping)
        and condition
        and all(str(key).startswith("$") for key in condition)
    )
    if not is_operator_doc:
        if not candidates:
            return condition is None
        return any(_equals(c, condition) for c in candidates)

    for token, expected in condition.items():
        try:
            operator = QueryOperator(token)
        except ValueError:
            raise StorageError(f"Unsupported query operator {token}") from None

        if operator is QueryOperator.EQUALS:
            matched = _matches_condition(candidates, expected)
        elif operator is QueryOperator.NOT_EQUALS:
            matched = not _matches_condition(candidates, expected)
        elif operator is QueryOperator.GREATER_THAN:
            matched = _compare(candidates, expected, lambda a, b: a > b)
        elif operator is QueryOperator.GREATER_THAN_OR_EQUAL:
            matched = _compare(candidates, expected, lambda a, b: a >= b)
        elif operator is QueryOperator.LESS_THAN:
            matched = _compare(candidates, expected, lambda a, b: a < b)
        elif operator is QueryOperator.LESS_THAN_OR_EQUAL:
            matched = _compare(candidates, expected, lambda a, b: a <= b)
        elif operator is QueryOperator.IN:
            matched = any(_matches_condition(candidates, option) for option in expected)
        elif operator is QueryOperator.NOT_IN:
            matched = not any(_matches_condition(candidates, option) for option in expected)
        else:
            matched = bool(candidates) == bool(expected)

        if not matched:
            return False
    return True


def matches(document: Mapping[str, Any], query: Optional[Filter]) -> bool:
    """True when `document` satisfies the filter document `query`"""
    for key, condition in (query or {}).items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not _matches_condition(resolve_path(document, key), condition):
            return False
    return True


def set_path(document: Dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted path, creating intermediate sub-documents"""
    segments = path.split(".")
    cursor = document
    for segment in segments[:-1]:
        child = cursor.get(segment)
        if not isinstance(child, dict):
            child = {}
            cursor[segment] = child
        cursor = child
    cursor[segments[-1]] = value


def unset_path(document: Dict[str, Any], path: str) -> None:
    segments = path.split(".")
    cursor: Any = document
    for segment in segments[:-1]:
        cursor = cursor.get(segment) if isinstance(cursor, dict) else None
        if cursor is None:
            return
    if isinstance(cursor, dict):
        cursor.pop(segments[-1], None)


def apply_update(document: Dict[str, Any], update: Update) -> None:
    """Apply a $set / $unset update document in place"""
    for token, fields in update.items():
        if token == "$set":
            for path, value in fields.items():
                set_path(document, path, copy.deepcopy(value))
        elif token == "$unset":
            for path in fields:
                unset_path(document, path)
        else:
            raise StorageError(f"Unsupported update operator {token}")


class MemoryDocumentStore(BaseDocumentStore):
    """
    Complete in-memory document store.

    Collections are created on first write. Insertion order is preserved and
    used as the natural order of unsorted queries.
    """

    def __init__(self, **settings):
        super().__init__(**settings)
        self._collections: Dict[str, Dict[Any, RawDocument]] = defaultdict(dict)
        self._indexes: Dict[str, List[IndexSpec]] = defaultdict(list)

    async def _do_shutdown(self):
        self._collections.clear()
        self._indexes.clear()

    def _update_count(self):
        self.metrics.documents_count = sum(len(c) for c in self._collections.values())

    def _matching(self, collection: str, query: Filter) -> List[RawDocument]:
        return [doc for doc in self._collections[collection].values() if matches(doc, query)]

    def _check_unique(self, collection: str, document: RawDocument) -> None:
        document_id = document.get("_id")
        for index in self._indexes[collection]:
            if not index.unique:
                continue
            key = tuple(self._index_value(document, f) for f in index.fields)
            if index.sparse and all(v is _MISSING for v in key):
                continue
            for other_id, other in self._collections[collection].items():
                if other_id == document_id:
                    continue
                if tuple(self._index_value(other, f) for f in index.fields) == key:
                    raise StorageError(
                        f"Duplicate key for unique index {index.name} in '{collection}': {key!r}"
                    )

    @staticmethod
    def _index_value(document: RawDocument, path: str) -> Any:
        values = resolve_path(document, path)
        return values[0] if values else _MISSING

    # Core operations
    async def save_document(self, collection: str, document: RawDocument) -> str:
        return await self._measure("save_document", self._save(collection, document))

    async def _save(self, collection: str, document: RawDocument) -> str:
        document_id = self._document_id(document)
        self._check_unique(collection, document)
        self._collections[collection][document_id] = copy.deepcopy(dict(document))
        self._update_count()
        self._logger.debug(f"Saved {collection}/{document_id}")
        return document_id

    async def find_one(self, collection: str, query: Filter) -> Optional[RawDocument]:
        return await self._measure("find_one", self._find_one(collection, query))

    async def _find_one(self, collection: str, query: Filter) -> Optional[RawDocument]:
        for document in self._collections[collection].values():
            if matches(document, query):
                return copy.deepcopy(document)
        return None

    async def find(self, collection: str, query: Filter,
                   sort: Optional[SortSpec] = None,
                   skip: int = 0,
                   limit: Optional[int] = None) -> List[RawDocument]:
        return await self._measure("find", self._find(collection, query, sort, skip, limit))

    async def _find(self, collection: str, query: Filter, sort: Optional[SortSpec],
                    skip: int, limit: Optional[int]) -> List[RawDocument]:
        found = self._matching(collection, query)

        # Stable sorts applied from the least to the most significant key
        for path, direction in reversed(sort or []):
            def sort_key(document, path=path):
                value = self._index_value(document, path)
                if value is _MISSING or value is None:
                    return (0, 0)
                return (1, value)
            found.sort(key=sort_key, reverse=sort_value(direction) < 0)

        found = found[skip:]
        if limit:
            found = found[:limit]
        return [copy.deepcopy(document) for document in found]

    async def count(self, collection: str, query: Filter) -> int:
        return await self._measure("count", self._count(collection, query))

    async def _count(self, collection: str, query: Filter) -> int:
        return len(self._matching(collection, query))

    async def delete_one(self, collection: str, query: Filter) -> int:
        return await self._measure("delete_one", self._delete(collection, query, many=False))

    async def delete_many(self, collection: str, query: Filter) -> int:
        return await self._measure("delete_many", self._delete(collection, query, many=True))

    async def _delete(self, collection: str, query: Filter, many: bool) -> int:
        doomed = [doc["_id"] for doc in self._matching(collection, query)]
        if not many:
            doomed = doomed[:1]
        for document_id in doomed:
            del self._collections[collection][document_id]
        self._update_count()
        self._logger.debug(f"Deleted {len(doomed)} document(s) from {collection}")
        return len(doomed)

    async def update_where(self, collection: str, query: Filter, update: Update) -> int:
        return await self._measure("update_where", self._update_where(collection, query, update))

    async def _update_where(self, collection: str, query: Filter, update: Update) -> int:
        matched = self._matching(collection, query)
        for document in matched:
            apply_update(document, update)
        self._logger.debug(f"Updated {len(matched)} document(s) in {collection}")
        return len(matched)

    async def upsert_array_element_by_id(self, collection: str, query: Filter,
                                         array_path: str, element_id: Any,
                                         element: RawDocument,
                                         id_key: str = "_id") -> int:
        return await self._measure(
            "upsert_array_element_by_id",
            self._upsert_element(collection, query, array_path, element_id, element, id_key),
        )

    async def _upsert_element(self, collection: str, query: Filter, array_path: str,
                              element_id: Any, element: RawDocument, id_key: str) -> int:
        matched = self._matching(collection, query)
        for document in matched:
            values = resolve_path(document, array_path)
            array = values[0] if values and isinstance(values[0], list) else None
            if array is None:
                array = []
                set_path(document, array_path, array)

            replacement = copy.deepcopy(dict(element))
            for position, existing in enumerate(array):
                if isinstance(existing, Mapping) and existing.get(id_key) == element_id:
                    array[position] = replacement
                    break
            else:
                array.append(replacement)
        return len(matched)

    async def remove_array_element_by_id(self, collection: str, query: Filter,
                                         array_path: str, element_id: Any,
                                         id_key: str = "_id") -> int:
        return await self._measure(
            "remove_array_element_by_id",
            self._remove_element(collection, query, array_path, element_id, id_key),
        )

    async def _remove_element(self, collection: str, query: Filter, array_path: str,
                              element_id: Any, id_key: str) -> int:
        matched = self._matching(collection, query)
        for document in matched:
            values = resolve_path(document, array_path)
            if not values or not isinstance(values[0], list):
                continue
            set_path(document, array_path, [
                item for item in values[0]
                if not (isinstance(item, Mapping) and item.get(id_key) == element_id)
            ])
        return len(matched)

    async def ensure_index(self, collection: str, index: IndexSpec) -> None:
        if any(existing.fields == index.fields for existing in self._indexes[collection]):
            return
        self._indexes[collection].append(index)
        self._logger.debug(f"Index {index.name} registered on {collection}")

    def indexes(self, collection: str) -> List[IndexSpec]:
        return list(self._indexes[collection])

    def collection_names(self) -> List[str]:
        return [name for name, documents in self._collections.items() if documents]


__all__ = [
    "MemoryDocumentStore", "matches", "resolve_path", "apply_update",
    "set_path", "unset_path",
]
