"""
Document Lifecycle - The Base of Every Persisted Type

This module contains the Record and Document base classes. Records are plain
pydantic models used for embedded sub-documents; Documents are records stored
in their own collection, carrying an id, timestamps, a "new" flag and a
lazily attached DiffTracker.

🎯 Declaring a document:
    class Child(Document):
        __collection__ = "children"
        __indexes__ = "{parent_id};"

        parent_id: Annotated[Optional[str], Ref("Parent")] = None
        name: str = ""

        def get_cascade(self, collection):
            return [CascadeConfig(...)]
"""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type, TypeVar, Union
import uuid

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from ..tracking.tracker import DiffTracker
from .codec import from_document, to_document

DocumentType = TypeVar("DocumentType", bound="Document")


class Record(BaseModel):
    """Base class for embedded records (accepts field names and wire names)"""
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)


class Document(Record):
    """
    Base class for documents stored in a collection.

    Class attributes:
        __collection__: Name of the collection the type is stored in
        __indexes__: Index expression, e.g. "{name},unique;{parent_id};"
    """

    __collection__: ClassVar[Optional[str]] = None
    __indexes__: ClassVar[Union[str, List[Any]]] = ""

    id: Optional[str] = Field(default=None, alias="_id")
    created: Optional[datetime] = Field(default=None, alias="_created")
    modified: Optional[datetime] = Field(default=None, alias="_modified")

    _exists: bool = PrivateAttr(default=False)
    _diff_tracker: Optional[DiffTracker] = PrivateAttr(default=None)

    # Diff tracking
    def get_diff_tracker(self) -> DiffTracker:
        """Tracker owned by this instance (created on first use)"""
        tracker = self._diff_tracker
        if tracker is None:
            self._diff_tracker = DiffTracker(self)
        elif tracker.document is not self:
            # Copied instance (model_copy): keep the baseline, not the owner.
            self._diff_tracker = tracker.copy_for(self)
        return self._diff_tracker

    # New tracking
    def is_new(self) -> bool:
        return not self._exists

    def set_is_new(self, is_new: bool) -> None:
        self._exists = not is_new

    def make_as_new(self) -> None:
        """Give the document a fresh id so the next save inserts a copy"""
        self.id = generate_id()
        self.set_is_new(True)

    # Wire form
    def to_document(self) -> Dict[str, Any]:
        return to_document(self)

    @classmethod
    def from_document(cls: Type[DocumentType], raw: Mapping[str, Any]) -> DocumentType:
        return from_document(cls, raw)

    @classmethod
    def type_name(cls) -> str:
        return cls.__name__


def generate_id() -> str:
    """Generate a new document id"""
    return uuid.uuid4().hex


__all__ = ["Record", "Document", "DocumentType", "generate_id"]
