"""
Tracking - Change Detection for Documents

- schema: cached field descriptions (Inline / Ref markers)
- diff: structural comparison of two record snapshots
- tracker: per-document baseline and diff sessions
"""

from .schema import (
    Inline, Ref, FieldKind, FieldSpec, RecordSchema, schema_for, leaf_paths,
)
from .diff import get_changed_fields
from .tracker import DiffTracker, DiffTrackingSession, get_path

__all__ = [
    "Inline", "Ref", "FieldKind", "FieldSpec", "RecordSchema", "schema_for",
    "leaf_paths", "get_changed_fields", "DiffTracker", "DiffTrackingSession",
    "get_path",
]
