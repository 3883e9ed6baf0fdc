"""
Cascade Configuration

A CascadeConfig declares one propagation rule: "when this document is saved
or deleted, copy these properties into the documents of that collection that
match this filter". Configurations are built fresh by the document's
get_cascade() hook on every save/delete and are never stored.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel


class RelationArity(Enum):
    """How the target embeds the source"""
    ONE = "one"      # a single embedded copy (or top-level properties)
    MANY = "many"    # an array of copies keyed by the source identity


Filter = Dict[str, Any]


@dataclass
class CascadeConfig:
    """
    One propagation rule.

    Attributes:
        collection: Target collection name
        properties: Wire paths on the source whose values are copied
        data: Record or mapping the values are read from (defaults to the
            triggering document)
        through_prop: Property on the target that holds the copy; empty means
            the properties are merged into the target's top level
        rel_type: ONE overwrites a single copy, MANY maintains an array of copies
        query: Filter selecting the currently related targets
        old_query: Filter selecting the previously related targets, set when
            the relation key changed since the last load
        nest: The target is itself a cascade source; propagate one more hop
        nested_type: Registered type name of the target, required with nest
        identity_key: Key identifying the source inside a MANY array
    """
    collection: str
    properties: List[str] = field(default_factory=list)
    data: Optional[Union[BaseModel, Mapping[str, Any]]] = None
    through_prop: str = ""
    rel_type: RelationArity = RelationArity.ONE
    query: Filter = field(default_factory=dict)
    old_query: Optional[Filter] = None
    nest: bool = False
    nested_type: Optional[str] = None
    identity_key: str = "_id"

    def __post_init__(self):
        if self.rel_type is RelationArity.MANY and not self.through_prop:
            raise ValueError("A MANY cascade needs a through_prop holding the array")
        if self.nest and not self.nested_type:
            raise ValueError("A nested cascade needs the registered nested_type of its target")

    @property
    def has_prior_relation(self) -> bool:
        return bool(self.old_query)

    def describe(self) -> str:
        target = f"{self.collection}.{self.through_prop}" if self.through_prop else self.collection
        return f"{self.rel_type.value}->{target}"


__all__ = ["CascadeConfig", "RelationArity", "Filter"]
