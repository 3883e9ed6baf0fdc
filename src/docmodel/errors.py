"""
DocModel Errors

Exception hierarchy shared by the diff tracker, the cascade engine, the
registry and the persistence layer.
"""

from typing import Any, List, Optional


class DocModelError(Exception):
    """Base exception for all DocModel errors"""
    pass


class DiffError(DocModelError):
    """Raised when two snapshots cannot be compared"""
    pass


class TypeMismatchError(DiffError):
    """Raised when comparing records of different declared types"""

    def __init__(self, left: type, right: type):
        self.left = left
        self.right = right
        super().__init__(
            f"Cannot compare two records of different types {left.__name__} and {right.__name__}"
        )


class NotARecordError(DiffError):
    """Raised when a non-record value is handed to the diff engine"""

    def __init__(self, left: type, right: type):
        self.left = left
        self.right = right
        super().__init__(
            f"Can only compare two records (got {left.__name__} and {right.__name__})"
        )


class UninitializedTrackerError(DocModelError):
    """Raised when a diff tracker is used before being attached to its document"""
    pass


class FieldPathError(DocModelError, KeyError):
    """Raised when a dotted field path cannot be resolved"""

    def __init__(self, path: str, segment: str):
        self.path = path
        self.segment = segment
        super().__init__(f"Field path '{path}' could not be resolved at '{segment}'")

    def __str__(self) -> str:
        return self.args[0]


class DocumentNotFoundError(DocModelError):
    """Raised when a lookup matched no document"""

    def __init__(self, message: str = "Document not found"):
        super().__init__(message)


class DocumentValidationError(DocModelError):
    """Aggregated validation failures raised before a document is written"""

    def __init__(self, errors: List[Any]):
        self.errors = list(errors)
        super().__init__(
            "Validation failed. (" + ", ".join(str(e) for e in self.errors) + ")"
        )


class RegistryError(DocModelError):
    """Raised for invalid or unknown document registrations"""
    pass


class IndexSyntaxError(RegistryError):
    """Raised when an index expression cannot be parsed"""
    pass


class StorageError(DocModelError):
    """Raised when the storage backend fails"""
    pass


class PropagationWriteError(DocModelError):
    """A single cascade step failed to write to its target collection"""

    def __init__(self, collection: str, step: str, cause: Optional[BaseException] = None):
        self.collection = collection
        self.step = step
        self.cause = cause
        message = f"Cascade {step} on '{collection}' failed"
        if cause is not None:
            message = f"{message}: {cause!r}"
        super().__init__(message)


__all__ = [
    "DocModelError", "DiffError", "TypeMismatchError", "NotARecordError",
    "UninitializedTrackerError", "FieldPathError", "DocumentNotFoundError",
    "DocumentValidationError", "RegistryError", "IndexSyntaxError",
    "StorageError", "PropagationWriteError",
]
