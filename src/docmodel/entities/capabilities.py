"""
Document Capabilities

Optional interfaces a document type may implement. The registry resolves them
once per type (see DocumentCapabilities) instead of probing every instance on
every save, delete or find.

Every hook may be a plain method or a coroutine function.
"""

from dataclasses import dataclass
import inspect
from typing import TYPE_CHECKING, Any, Callable, List, Protocol, Type, runtime_checkable

if TYPE_CHECKING:
    from ..cascade.config import CascadeConfig
    from ..collection import Collection


@runtime_checkable
class CascadingDocument(Protocol):
    def get_cascade(self, collection: "Collection") -> List["CascadeConfig"]: ...


@runtime_checkable
class ValidatingDocument(Protocol):
    def validate_document(self, collection: "Collection") -> Any: ...


@runtime_checkable
class BeforeSaveHook(Protocol):
    def before_save(self, collection: "Collection") -> Any: ...


@runtime_checkable
class AfterSaveHook(Protocol):
    def after_save(self, collection: "Collection") -> Any: ...


@runtime_checkable
class BeforeDeleteHook(Protocol):
    def before_delete(self, collection: "Collection") -> Any: ...


@runtime_checkable
class AfterDeleteHook(Protocol):
    def after_delete(self, collection: "Collection") -> Any: ...


@runtime_checkable
class AfterFindHook(Protocol):
    def after_find(self, collection: "Collection") -> Any: ...


@dataclass(frozen=True)
class DocumentCapabilities:
    """Which optional interfaces a document type implements"""
    cascade: bool = False
    validate: bool = False
    before_save: bool = False
    after_save: bool = False
    before_delete: bool = False
    after_delete: bool = False
    after_find: bool = False

    @classmethod
    def resolve(cls, document_class: Type[Any]) -> "DocumentCapabilities":
        return cls(
            cascade=issubclass(document_class, CascadingDocument),
            validate=issubclass(document_class, ValidatingDocument),
            before_save=issubclass(document_class, BeforeSaveHook),
            after_save=issubclass(document_class, AfterSaveHook),
            before_delete=issubclass(document_class, BeforeDeleteHook),
            after_delete=issubclass(document_class, AfterDeleteHook),
            after_find=issubclass(document_class, AfterFindHook),
        )


async def invoke(method: Callable[..., Any], *args: Any) -> Any:
    """Call a hook that may be a plain method or a coroutine function"""
    result = method(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


__all__ = [
    "CascadingDocument", "ValidatingDocument", "BeforeSaveHook", "AfterSaveHook",
    "BeforeDeleteHook", "AfterDeleteHook", "AfterFindHook", "DocumentCapabilities", "invoke",
]
