"""
DocModel - Document Models with Change Tracking and Cascading Updates

🎯 Pydantic documents stored in a document database:
- Diff tracking: which fields changed since the document was loaded
- Cascades: denormalized copies kept in sync across collections
- Pluggable stores: in-memory and MongoDB (Motor)

    class Parent(Document):
        __collection__ = "parents"
        name: str = ""

    async with Connection(ApplicationConfig()) as connection:
        await connection.save(Parent(name="Testy McGee"))
"""

from .errors import (
    DocModelError, DiffError, TypeMismatchError, NotARecordError,
    UninitializedTrackerError, FieldPathError, DocumentNotFoundError,
    DocumentValidationError, RegistryError, IndexSyntaxError, StorageError,
    PropagationWriteError,
)
from .tracking import (
    Inline, Ref, get_changed_fields, DiffTracker, DiffTrackingSession,
)
from .entities import (
    Record, Document, generate_id, SchemaRegistry, DocumentSchema, RefIndex,
    IndexSpec, parse_index_expression, ValidationIssue, ValidationResult,
    validate_required, validate_inclusion_in, validate_ref_exists,
)
from .cascade import (
    CascadeConfig, RelationArity, CascadeExecutor, CascadeOutcome,
    build_nested_map, zero_nested_map,
)
from .persistence import DocumentStore, MemoryDocumentStore, SortDirection
from .events import DomainEvent, EventType, EventBus, InProcessEventBus
from .config import (
    ApplicationConfig, Environment, PersistenceConfig, CascadeConfigOptions,
    LoggingConfig, configure_logging,
)
from .collection import Collection
from .result_set import ResultSet
from .connection import Connection, create_store

__version__ = "0.1.0"

__all__ = [
    # Errors
    "DocModelError", "DiffError", "TypeMismatchError", "NotARecordError",
    "UninitializedTrackerError", "FieldPathError", "DocumentNotFoundError",
    "DocumentValidationError", "RegistryError", "IndexSyntaxError", "StorageError",
    "PropagationWriteError",

    # Tracking
    "Inline", "Ref", "get_changed_fields", "DiffTracker", "DiffTrackingSession",

    # Documents
    "Record", "Document", "generate_id", "SchemaRegistry", "DocumentSchema", "RefIndex",
    "IndexSpec", "parse_index_expression", "ValidationIssue", "ValidationResult",
    "validate_required", "validate_inclusion_in", "validate_ref_exists",

    # Cascades
    "CascadeConfig", "RelationArity", "CascadeExecutor", "CascadeOutcome",
    "build_nested_map", "zero_nested_map",

    # Storage and events
    "DocumentStore", "MemoryDocumentStore", "SortDirection",
    "DomainEvent", "EventType", "EventBus", "InProcessEventBus",

    # Configuration
    "ApplicationConfig", "Environment", "PersistenceConfig", "CascadeConfigOptions",
    "LoggingConfig", "configure_logging",

    # Pipeline
    "Collection", "ResultSet", "Connection", "create_store",
]
