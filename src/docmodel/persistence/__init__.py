"""
Persistence Layer - Document Stores

💾 Backends:
- MemoryDocumentStore: in-process store for tests and scripts
- MongoDocumentStore: MongoDB through Motor (imported on demand)
"""

from .repositories import (
    DocumentStore, BaseDocumentStore, StoreMetrics, QueryOperator,
    SortDirection, SortSpec, Filter, Update, RawDocument,
)
from .backends import MemoryDocumentStore

__all__ = [
    "DocumentStore", "BaseDocumentStore", "StoreMetrics", "QueryOperator",
    "SortDirection", "SortSpec", "Filter", "Update", "RawDocument",
    "MemoryDocumentStore",
]
