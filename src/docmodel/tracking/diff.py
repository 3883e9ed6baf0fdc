"""
Structural Diff Engine

Compares two snapshots of the same record type field by field and returns the
dotted paths of every leaf that differs. Pure: no I/O, no mutation.
"""

from typing import Any, List

from pydantic import BaseModel

from ..errors import NotARecordError, TypeMismatchError
from .schema import FieldKind, is_record, leaf_paths, schema_for


def _text(value: Any) -> str:
    # Leaves compare on their textual form; float precision loss is accepted.
    return str(value)


def get_changed_fields(original: BaseModel, current: BaseModel,
                       use_external_names: bool = False) -> List[str]:
    """
    Return the paths of all fields that differ between two records.

    Args:
        original: Baseline snapshot
        current: Snapshot to compare against the baseline
        use_external_names: Build paths from wire names instead of field names

    Returns:
        Ordered list of dotted field paths

    Raises:
        NotARecordError: If either side is not a record
        TypeMismatchError: If the two records are of different types
    """
    if not is_record(original) or not is_record(current):
        raise NotARecordError(type(original), type(current))

    if type(original) is not type(current):
        raise TypeMismatchError(type(original), type(current))

    diffs: List[str] = []

    for spec in schema_for(type(original)).fields:
        name = spec.path_name(use_external_names)
        left = getattr(original, spec.name, None)
        right = getattr(current, spec.name, None)

        if spec.kind is FieldKind.LEAF:
            if _text(left) != _text(right):
                diffs.append(name)
            continue

        if left is None and right is None:
            continue

        if spec.stringer:
            if _text(left) != _text(right):
                diffs.append(name)
            continue

        if left is None or right is None:
            child_diffs = leaf_paths(spec.record_type, use_external_names)
        else:
            child_diffs = get_changed_fields(left, right, use_external_names)

        for child in child_diffs:
            diffs.append(child if spec.inline else f"{name}.{child}")

    return diffs


__all__ = ["get_changed_fields"]
