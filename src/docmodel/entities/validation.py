"""
Validation - Document Checks Before Save

✅ Validation Helpers:
A document implementing `validate_document(collection)` returns either a
ValidationResult or a plain list of issues/messages. Any issue aborts the
save with DocumentValidationError.

    class User(Document):
        def validate_document(self, collection):
            result = ValidationResult()
            if not validate_required(self.email):
                result.add_error("email", "email is required")
            return result
"""

from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING
from dataclasses import dataclass, field

if TYPE_CHECKING:
    from ..collection import Collection


@dataclass
class ValidationIssue:
    """Represents a validation error"""
    field: Optional[str]
    message: str
    code: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.field}: {self.message}" if self.field else self.message


@dataclass
class ValidationResult:
    """Result of validation operations"""
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, field: Optional[str], message: str,
                  code: Optional[str] = None, **context) -> 'ValidationResult':
        """Add a validation error"""
        self.errors.append(ValidationIssue(field, message, code, context))
        return self

    def add_warning(self, field: Optional[str], message: str,
                    code: Optional[str] = None, **context) -> 'ValidationResult':
        """Add a validation warning"""
        self.warnings.append(ValidationIssue(field, message, code, context))
        return self

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def get_errors_by_field(self, field: str) -> List[ValidationIssue]:
        """Get errors for a specific field"""
        return [e for e in self.errors if e.field == field]

    def get_error_messages(self) -> List[str]:
        return [e.message for e in self.errors]


def collect_issues(outcome: Any) -> List[Any]:
    """Normalize whatever validate_document returned into a list of issues"""
    if outcome is None:
        return []
    if isinstance(outcome, ValidationResult):
        return list(outcome.errors)
    if isinstance(outcome, (str, ValidationIssue)):
        return [outcome]
    return [issue for issue in outcome if issue]


def validate_required(value: Any) -> bool:
    """True when `value` differs from the zero value of its type"""
    if value is None:
        return False
    try:
        return value != type(value)()
    except (TypeError, ValueError):
        return True


def validate_inclusion_in(value: str, options: Iterable[str]) -> bool:
    return value in list(options)


async def validate_ref_exists(collection: "Collection", document_id: Any) -> bool:
    """True when a document with `document_id` exists in `collection`"""
    if document_id is None:
        return False
    return await collection.count({"_id": document_id}) > 0


__all__ = [
    "ValidationIssue", "ValidationResult", "collect_issues",
    "validate_required", "validate_inclusion_in", "validate_ref_exists",
]
