"""
Record Schema - Cached Field Descriptions

📐 Explicit Schema Description:
Every pydantic record class is described once, on first use, as a flat tuple
of FieldSpec entries. The diff engine, the wire codec and the registry walk
these descriptions instead of inspecting annotations on every call.

Markers:
- Inline(): flatten a sub-record into its parent's namespace
- Ref("TypeName"): declare a relation key pointing at another document type
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, List, Optional, Tuple, Type, Union, get_args, get_origin
import types

from pydantic import BaseModel


class Inline:
    """Annotated marker: the sub-record's fields live at the parent's level"""

    def __repr__(self) -> str:
        return "Inline()"


@dataclass(frozen=True)
class Ref:
    """Annotated marker: the field holds the id(s) of another document type"""
    target: str


class FieldKind(Enum):
    """How a field participates in comparison and serialization"""
    LEAF = "leaf"
    RECORD = "record"


@dataclass(frozen=True)
class FieldSpec:
    """Description of a single record field"""
    name: str
    external_name: str
    kind: FieldKind
    record_type: Optional[Type[BaseModel]] = None
    optional: bool = False
    inline: bool = False
    stringer: bool = False
    is_list: bool = False
    ref: Optional[Ref] = None

    def path_name(self, use_external_names: bool) -> str:
        return self.external_name if use_external_names else self.name


@dataclass(frozen=True)
class RecordSchema:
    """All comparable fields of a record type, in declaration order"""
    record_type: Type[BaseModel]
    fields: Tuple[FieldSpec, ...]

    def field(self, name: str) -> Optional[FieldSpec]:
        """Find a field by declared or external name"""
        for spec in self.fields:
            if spec.name == name:
                return spec
        for spec in self.fields:
            if spec.external_name == name:
                return spec
        return None

    @property
    def refs(self) -> Tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.ref is not None)


def is_record_type(candidate: Any) -> bool:
    return isinstance(candidate, type) and issubclass(candidate, BaseModel)


def is_record(value: Any) -> bool:
    return isinstance(value, BaseModel)


def has_stringer(record_type: Type[BaseModel]) -> bool:
    """A record type with its own textual form is compared by that form"""
    return record_type.__str__ is not BaseModel.__str__


def _unwrap_optional(annotation: Any) -> Tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        optional = len(args) != len(get_args(annotation))
        if len(args) == 1:
            return args[0], optional
    return annotation, False


def _is_list(annotation: Any) -> bool:
    return get_origin(annotation) in (list, List, tuple, set, frozenset)


def _build_spec(name: str, info: Any) -> FieldSpec:
    annotation, optional = _unwrap_optional(info.annotation)
    metadata = list(info.metadata or [])
    inline = any(isinstance(marker, Inline) for marker in metadata)
    ref = next((marker for marker in metadata if isinstance(marker, Ref)), None)
    external = info.alias or name

    if is_record_type(annotation):
        return FieldSpec(
            name=name,
            external_name=external,
            kind=FieldKind.RECORD,
            record_type=annotation,
            optional=optional,
            inline=inline,
            stringer=has_stringer(annotation),
            ref=ref,
        )

    return FieldSpec(
        name=name,
        external_name=external,
        kind=FieldKind.LEAF,
        optional=optional,
        is_list=_is_list(annotation),
        ref=ref,
    )


@lru_cache(maxsize=None)
def schema_for(record_type: Type[BaseModel]) -> RecordSchema:
    """Describe a record type; excluded fields are not part of the schema"""
    specs = []
    for name, info in record_type.model_fields.items():
        if info.exclude is True:
            continue
        specs.append(_build_spec(name, info))
    return RecordSchema(record_type=record_type, fields=tuple(specs))


def leaf_paths(record_type: Type[BaseModel], use_external_names: bool = False) -> List[str]:
    """Every leaf path of a record type, honoring inline fields"""
    paths: List[str] = []
    for spec in schema_for(record_type).fields:
        name = spec.path_name(use_external_names)
        if spec.kind is FieldKind.RECORD and not spec.stringer:
            for child in leaf_paths(spec.record_type, use_external_names):
                paths.append(child if spec.inline else f"{name}.{child}")
        else:
            paths.append(name)
    return paths


__all__ = [
    "Inline", "Ref", "FieldKind", "FieldSpec", "RecordSchema",
    "schema_for", "leaf_paths", "is_record", "is_record_type", "has_stringer",
]
