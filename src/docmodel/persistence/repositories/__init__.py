"""
Store contracts shared by every backend
"""

from .interface import (
    DocumentStore, QueryOperator, SortDirection, SortSpec,
    Filter, Update, RawDocument, sort_value,
)
from .base import BaseDocumentStore, StoreMetrics

__all__ = [
    "DocumentStore", "QueryOperator", "SortDirection", "SortSpec",
    "Filter", "Update", "RawDocument", "sort_value",
    "BaseDocumentStore", "StoreMetrics",
]
