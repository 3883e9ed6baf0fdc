"""
Diff Tracking - Original vs Current State

🔍 Per-Document Change Detection:
A DiffTracker is attached to exactly one live document. It keeps a deep copy
of the document's last known persisted state (the baseline) and answers
"which fields changed since then" through short-lived DiffTrackingSession
objects.

Trackers are not synchronized: the owning document instance is the only
caller allowed to use one.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple
import copy
import logging

from pydantic import BaseModel

from ..errors import FieldPathError, UninitializedTrackerError
from .diff import get_changed_fields
from .schema import is_record, schema_for

logger = logging.getLogger(__name__)


@dataclass
class DiffTrackingSession:
    """Result of one comparison between the baseline and the live document"""
    is_new: bool
    changed_fields: List[str] = field(default_factory=list)

    def modified(self, path: str) -> bool:
        """True if the document is new or `path` (or anything under it) changed"""
        if self.is_new:
            return True

        prefix = path + "."
        for changed in self.changed_fields:
            if changed == path or changed.startswith(prefix):
                return True
        return False


def _snapshot(value: Any) -> Any:
    # Field values only: private state (the tracker itself) stays behind.
    if isinstance(value, BaseModel):
        data = copy.deepcopy(dict(value.__dict__))
        return type(value).model_construct(_fields_set=set(value.model_fields_set), **data)
    return copy.deepcopy(value)


def get_path(value: Any, path: str) -> Any:
    """
    Resolve a dotted path inside a record or mapping.

    Record segments are looked up by field name first and by wire name second.

    Raises:
        FieldPathError: If a segment does not exist
    """
    current = value
    for segment in path.split("."):
        if current is None:
            raise FieldPathError(path, segment)

        if isinstance(current, dict):
            if segment not in current:
                raise FieldPathError(path, segment)
            current = current[segment]
            continue

        if is_record(current):
            spec = schema_for(type(current)).field(segment)
            if spec is not None:
                current = getattr(current, spec.name)
                continue

        if not hasattr(current, segment):
            raise FieldPathError(path, segment)
        current = getattr(current, segment)

    return current


class DiffTracker:
    """
    Tracks changes of one document against a captured baseline.

    Usage:
        tracker = DiffTracker(document)
        tracker.reset()                 # baseline = current state
        document.name = "changed"
        tracker.modified("name")        # True
    """

    def __init__(self, document: Optional[BaseModel] = None):
        self._current = document
        self._original: Optional[BaseModel] = None

    @property
    def has_original(self) -> bool:
        return self._original is not None

    @property
    def original(self) -> Optional[BaseModel]:
        return self._original

    @property
    def document(self) -> Optional[BaseModel]:
        return self._current

    def copy_for(self, document: BaseModel) -> "DiffTracker":
        """A tracker owned by `document` that starts from this tracker's baseline"""
        tracker = DiffTracker(document)
        if self._original is not None:
            tracker.set_original(self._original)
        return tracker

    def attach(self, document: BaseModel) -> None:
        """Bind the tracker to its owning document"""
        self._current = document

    def reset(self) -> None:
        """Capture the current state of the document as the new baseline"""
        self._require_document()
        self._original = _snapshot(self._current)

    def set_original(self, value: BaseModel) -> None:
        """Use an externally obtained snapshot (e.g. freshly loaded) as baseline"""
        self._original = _snapshot(value)

    def clear(self) -> None:
        """Forget the baseline; the document is treated as new again"""
        self._original = None

    def compare(self, use_external_names: bool = False) -> Tuple[bool, List[str]]:
        """
        Compare baseline and live document.

        Returns:
            (is_new, changed_paths) - is_new is True when no baseline exists

        Raises:
            UninitializedTrackerError: If the tracker has no owning document
        """
        self._require_document()

        if self._original is None:
            return True, []

        return False, get_changed_fields(self._original, self._current, use_external_names)

    def get_modified(self, use_external_names: bool = False) -> Tuple[bool, List[str]]:
        return self.compare(use_external_names)

    def new_session(self, use_external_names: bool = False) -> DiffTrackingSession:
        is_new, changed = self.compare(use_external_names)
        return DiffTrackingSession(is_new=is_new, changed_fields=changed)

    def modified(self, path: str) -> bool:
        return self.new_session(False).modified(path)

    def get_original_value(self, path: str) -> Any:
        """Value at `path` in the baseline, or None if no baseline was captured"""
        if self._original is None:
            return None
        return get_path(self._original, path)

    def _require_document(self) -> None:
        if self._current is None:
            logger.error("DiffTracker used without an owning document; "
                         "attach it with DiffTracker(document) or Document.get_diff_tracker()")
            raise UninitializedTrackerError(
                "This diff tracker is not attached to a document"
            )


__all__ = ["DiffTracker", "DiffTrackingSession", "get_path"]
