"""
Schema Registry

Explicit registry of document types: collection names, index definitions,
reference fields and resolved capabilities. Built once at startup and passed
by reference to the connection and the cascade executor, so tests can use as
many isolated registries as they need.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Type, Union
import logging

from ..cascade.config import RelationArity
from ..errors import RegistryError
from ..tracking.schema import schema_for
from .capabilities import DocumentCapabilities
from .document import Document
from .indexes import IndexSpec, coerce_indexes

logger = logging.getLogger(__name__)


@dataclass
class RefIndex:
    """A reference field pointing at another registered type"""
    field: str
    target: str
    arity: RelationArity = RelationArity.ONE
    exists: bool = False


@dataclass
class DocumentSchema:
    """Everything the pipeline needs to know about one document type"""
    name: str
    document_class: Type[Document]
    collection: str
    indexes: List[IndexSpec] = field(default_factory=list)
    refs: Dict[str, RefIndex] = field(default_factory=dict)
    capabilities: DocumentCapabilities = field(default_factory=DocumentCapabilities)


class SchemaRegistry:
    """
    Registry of document types.

    Usage:
        registry = SchemaRegistry()
        registry.register(Parent, Child)
        registry.resolve_collection("Child")   # "children"
    """

    def __init__(self):
        self._schemas: Dict[str, DocumentSchema] = {}

    def register(self, *document_classes: Type[Document]) -> None:
        """
        Register one or more document types.

        Args:
            *document_classes: Document subclasses declaring __collection__

        Raises:
            RegistryError: If a type is not a Document or lacks a collection name
        """
        for position, document_class in enumerate(document_classes):
            if not isinstance(document_class, type) or not issubclass(document_class, Document):
                raise RegistryError(
                    f"Only Document subclasses can be registered "
                    f"(passed {document_class!r} at position {position})"
                )

            name = document_class.type_name()
            collection = document_class.__collection__
            if not collection:
                raise RegistryError(f"The document type {name} does not declare __collection__")

            refs = {}
            for spec in schema_for(document_class).refs:
                arity = RelationArity.MANY if spec.is_list else RelationArity.ONE
                refs[spec.name] = RefIndex(field=spec.name, target=spec.ref.target, arity=arity)

            self._schemas[name] = DocumentSchema(
                name=name,
                document_class=document_class,
                collection=collection,
                indexes=coerce_indexes(document_class.__indexes__),
                refs=refs,
                capabilities=DocumentCapabilities.resolve(document_class),
            )
            logger.debug(f"Registered document type {name} -> {collection}")

        self._resolve_refs()

    def _resolve_refs(self) -> None:
        for schema in self._schemas.values():
            for ref in schema.refs.values():
                ref.exists = ref.target in self._schemas

    def ensure_registered(self, document_class: Type[Document]) -> DocumentSchema:
        """Schema of a type, registering it on first use"""
        name = document_class.type_name()
        if name not in self._schemas:
            self.register(document_class)
        return self._schemas[name]

    def exists(self, document: Union[Document, Type[Document]]) -> bool:
        return self._type_name(document) in self._schemas

    def schema_for(self, document: Union[str, Document, Type[Document]]) -> DocumentSchema:
        """
        Look up the schema of a type.

        Raises:
            RegistryError: If the type is not registered
        """
        name = document if isinstance(document, str) else self._type_name(document)
        try:
            return self._schemas[name]
        except KeyError:
            raise RegistryError(f"Document type {name} is not registered") from None

    def resolve_collection(self, type_name: str) -> str:
        return self.schema_for(type_name).collection

    def resolve_reference_fields(self, type_name: str) -> Dict[str, RefIndex]:
        return dict(self.schema_for(type_name).refs)

    def search_ref(self, document: Union[Document, Type[Document]],
                   field_name: str) -> Optional[Tuple[DocumentSchema, RefIndex]]:
        """Schema and RefIndex of a reference field, or None"""
        if not self.exists(document):
            return None
        schema = self.schema_for(document)
        ref = schema.refs.get(field_name)
        if ref is None:
            return None
        return schema, ref

    def type_for(self, type_name: str) -> Type[Document]:
        return self.schema_for(type_name).document_class

    def new_zero_value(self, type_name: str) -> Document:
        """An instance holding only defaults, without running validation"""
        return self.type_for(type_name).model_construct()

    def names(self) -> List[str]:
        return list(self._schemas)

    def clear(self) -> None:
        self._schemas.clear()

    def __contains__(self, item: Any) -> bool:
        if isinstance(item, str):
            return item in self._schemas
        return self.exists(item)

    def __len__(self) -> int:
        return len(self._schemas)

    @staticmethod
    def _type_name(document: Union[Document, Type[Document]]) -> str:
        document_class = document if isinstance(document, type) else type(document)
        return document_class.__name__


__all__ = ["SchemaRegistry", "DocumentSchema", "RefIndex"]
