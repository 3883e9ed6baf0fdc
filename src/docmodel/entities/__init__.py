"""
Entities - Documents, Records and Their Registry

🎯 Building blocks:
- Record / Document: pydantic base classes with wire aliases and tracking
- SchemaRegistry: collections, indexes, references and capabilities per type
- Validation helpers used by validate_document hooks
"""

from .document import Record, Document, DocumentType, generate_id
from .codec import to_document, from_document
from .capabilities import DocumentCapabilities, invoke
from .indexes import IndexSpec, parse_index_expression, coerce_indexes
from .registry import SchemaRegistry, DocumentSchema, RefIndex
from .validation import (
    ValidationIssue, ValidationResult, validate_required,
    validate_inclusion_in, validate_ref_exists,
)

__all__ = [
    "Record", "Document", "DocumentType", "generate_id",
    "to_document", "from_document",
    "DocumentCapabilities", "invoke",
    "IndexSpec", "parse_index_expression", "coerce_indexes",
    "SchemaRegistry", "DocumentSchema", "RefIndex",
    "ValidationIssue", "ValidationResult", "validate_required",
    "validate_inclusion_in", "validate_ref_exists",
]
