"""
Record Codec - Records <-> Wire Documents

Converts pydantic records to the dictionaries stored in a collection and back,
using wire (alias) names and flattening Inline() sub-records into their parent.
"""

from typing import Any, Dict, Mapping, Type, TypeVar

from pydantic import BaseModel

from ..tracking.schema import FieldKind, schema_for

RecordType = TypeVar("RecordType", bound=BaseModel)


def to_document(record: BaseModel) -> Dict[str, Any]:
    """Serialize a record to its wire form"""
    dumped = record.model_dump(by_alias=True)
    infos = type(record).model_fields
    document: Dict[str, Any] = {}

    for spec in schema_for(type(record)).fields:
        value = getattr(record, spec.name, None)

        if spec.kind is FieldKind.RECORD:
            if spec.inline:
                if value is not None:
                    document.update(to_document(value))
                continue
            document[spec.external_name] = to_document(value) if value is not None else None
            continue

        info = infos[spec.name]
        document[spec.external_name] = dumped.get(info.serialization_alias or info.alias or spec.name)

    return document


def _wire_values(record_type: Type[BaseModel], raw: Mapping[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}

    for spec in schema_for(record_type).fields:
        if spec.kind is FieldKind.RECORD and spec.inline:
            values[spec.external_name] = _wire_values(spec.record_type, raw)
            continue

        if spec.external_name not in raw:
            continue

        value = raw[spec.external_name]
        if spec.kind is FieldKind.RECORD and isinstance(value, Mapping):
            value = _wire_values(spec.record_type, value)
        values[spec.external_name] = value

    return values


def from_document(record_type: Type[RecordType], raw: Mapping[str, Any]) -> RecordType:
    """Build a record from its wire form; missing keys fall back to defaults"""
    return record_type.model_validate(_wire_values(record_type, raw))


__all__ = ["to_document", "from_document"]
