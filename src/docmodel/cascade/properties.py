"""
Cascade property extraction: turn a list of dotted wire paths into the
nested partial document written to the target collection.
"""

from typing import Any, Dict, Iterable, Mapping, Union

from pydantic import BaseModel

from ..entities.codec import to_document

_MISSING = object()


def _wire_form(source: Union[BaseModel, Mapping[str, Any], None]) -> Mapping[str, Any]:
    if source is None:
        return {}
    if isinstance(source, BaseModel):
        return to_document(source)
    return source


def _lookup(document: Mapping[str, Any], path: str) -> Any:
    value: Any = document
    for segment in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(segment, _MISSING)
        if value is _MISSING:
            return None
    return value


def extract_value(source: Union[BaseModel, Mapping[str, Any], None], path: str) -> Any:
    """Value at a dotted wire path of `source`, None when missing"""
    return _lookup(_wire_form(source), path)


def build_nested_map(paths: Iterable[str],
                     source: Union[BaseModel, Mapping[str, Any], None]) -> Dict[str, Any]:
    """
    Build the nested mapping holding the values of `paths` read off `source`.

    Paths sharing a prefix merge into the same nested mapping, so the order
    of `paths` does not matter. Missing values become None.

    Args:
        paths: Dotted wire paths, e.g. ["name", "address.city"]
        source: A record (read through its wire form) or a wire mapping

    Returns:
        {"name": ..., "address": {"city": ...}}
    """
    document = _wire_form(source)
    result: Dict[str, Any] = {}

    for path in paths:
        segments = path.split(".")
        cursor = result
        for segment in segments[:-1]:
            child = cursor.get(segment)
            if not isinstance(child, dict):
                child = {}
                cursor[segment] = child
            cursor = child
        cursor[segments[-1]] = _lookup(document, path)

    return result


def zero_value(value: Any) -> Any:
    """Zero value matching the type of `value`"""
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        return ""
    if isinstance(value, (int, float)):
        return type(value)()
    if isinstance(value, (list, tuple, set)):
        return []
    if isinstance(value, Mapping):
        return {}
    return None


def zero_nested_map(mapping: Mapping[str, Any]) -> Dict[str, Any]:
    """Same shape as `mapping` with every leaf replaced by its zero value"""
    zeroed: Dict[str, Any] = {}
    for key, value in mapping.items():
        if isinstance(value, Mapping) and value:
            zeroed[key] = zero_nested_map(value)
        else:
            zeroed[key] = zero_value(value)
    return zeroed


__all__ = ["build_nested_map", "extract_value", "zero_nested_map", "zero_value"]
