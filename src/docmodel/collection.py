"""
Collection - Save / Delete / Find Pipeline

🔄 Save pipeline:
    validate -> before_save -> timestamps -> indexes -> id -> upsert
    -> after_save -> not new -> cascade configs -> tracker reset
    -> DOCUMENT_SAVED -> cascade dispatch

Cascade configurations are built before the tracker is reset, so
get_cascade() still sees what changed since the document was loaded.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Optional, Tuple, Type
import asyncio
import logging

from .cascade.config import CascadeConfig
from .cascade.executor import collect_cascade
from .entities.capabilities import invoke
from .entities.document import Document, DocumentType, generate_id
from .entities.registry import DocumentSchema
from .entities.validation import collect_issues
from .errors import (
    DocModelError, DocumentNotFoundError, DocumentValidationError, PropagationWriteError, RegistryError,
)
from .events import DomainEvent
from .persistence.repositories.interface import DocumentStore, Filter, RawDocument
from .result_set import ResultSet

if TYPE_CHECKING:
    from .connection import Connection

logger = logging.getLogger(__name__)


class Collection:
    """
    One named collection of a Connection.

    A collection is usually bound to the document type stored in it (see
    Connection.collection_for); find methods accept an explicit document
    class otherwise.
    """

    def __init__(self, connection: "Connection", name: str,
                 document_class: Optional[Type[Document]] = None):
        self.connection = connection
        self.name = name
        self.document_class = document_class

    @property
    def store(self) -> DocumentStore:
        return self.connection.store

    def __repr__(self) -> str:
        bound = self.document_class.__name__ if self.document_class else None
        return f"Collection(name={self.name!r}, document_class={bound})"

    def _schema(self, document_class: Type[Document]) -> DocumentSchema:
        return self.connection.registry.ensure_registered(document_class)

    def _resolve_class(self, document_class: Optional[Type[DocumentType]]) -> Type[DocumentType]:
        resolved = document_class or self.document_class
        if resolved is None:
            raise RegistryError(f"Collection '{self.name}' is not bound to a document type")
        return resolved

    async def ensure_indexes(self, schema: DocumentSchema) -> None:
        """Create the declared indexes once per collection and connection"""
        if not self.connection.mark_indexed(self.name):
            return
        for index in schema.indexes:
            await self.store.ensure_index(self.name, index)

    # Save
    async def save(self, document: Document) -> Optional[asyncio.Task]:
        """
        Validate, persist and propagate a document.

        Args:
            document: The document to save

        Returns:
            The background cascade task, or None when nothing propagates

        Raises:
            DocumentValidationError: If validate_document reported issues
        """
        schema = self._schema(type(document))
        capabilities = schema.capabilities

        if capabilities.validate:
            issues = collect_issues(await invoke(document.validate_document, self))
            if issues:
                raise DocumentValidationError(issues)

        if capabilities.before_save:
            await invoke(document.before_save, self)

        is_new = document.is_new()
        now = datetime.now()
        if is_new:
            document.created = now
        document.modified = now

        await self.ensure_indexes(schema)

        if not is_new and not document.id:
            raise DocModelError("Document is not new but has no id")
        if is_new and not document.id:
            document.id = generate_id()

        await self.store.save_document(self.name, document.to_document())
        logger.debug(f"Saved {schema.name} {document.id} to {self.name}")

        if capabilities.after_save:
            await invoke(document.after_save, self)

        document.set_is_new(False)

        tracker = document.get_diff_tracker()
        session = tracker.new_session(use_external_names=True)

        configs, failure = await self._cascade_configs(document, schema)

        tracker.reset()

        await self.connection.publish(DomainEvent.document_saved(
            self.name, schema.name, document.id, session.is_new, session.changed_fields
        ))
        if failure is not None:
            await self.connection.publish(failure)

        return await self._propagate(self.connection.executor.dispatch_save(document, self.name, configs))

    # Delete
    async def delete_document(self, document: Document) -> Optional[asyncio.Task]:
        """
        Remove a document, running its delete hooks and cascades.

        Raises:
            DocumentNotFoundError: If the document is not stored in this collection
        """
        schema = self._schema(type(document))
        capabilities = schema.capabilities

        if capabilities.before_delete:
            await invoke(document.before_delete, self)

        removed = await self.store.delete_one(self.name, {"_id": document.id})
        if not removed:
            raise DocumentNotFoundError(f"Document {document.id} not found in {self.name}")
        logger.debug(f"Deleted {schema.name} {document.id} from {self.name}")

        if capabilities.after_delete:
            await invoke(document.after_delete, self)

        configs, failure = await self._cascade_configs(document, schema)

        await self.connection.publish(DomainEvent.document_deleted(self.name, schema.name, document.id))
        if failure is not None:
            await self.connection.publish(failure)

        return await self._propagate(self.connection.executor.dispatch_delete(document, self.name, configs))

    async def delete(self, query: Filter) -> int:
        """Remove every match. No hooks, no cascades."""
        return await self.store.delete_many(self.name, query)

    async def delete_one(self, query: Filter) -> None:
        """
        Remove the first match. No hooks, no cascades.

        Raises:
            DocumentNotFoundError: If nothing matched
        """
        if not await self.store.delete_one(self.name, query):
            raise DocumentNotFoundError()

    async def _cascade_configs(self, document: Document,
                               schema: DocumentSchema) -> Tuple[List[CascadeConfig], Optional[DomainEvent]]:
        """
        Build the document's cascade configurations after its primary write.

        A raising get_cascade never fails the save / delete that already
        happened: it is logged and returned as a CASCADE_FAILED event.
        """
        if not schema.capabilities.cascade or not self.connection.executor.options.enabled:
            return [], None
        try:
            return await collect_cascade(document, self), None
        except Exception as e:
            error = PropagationWriteError(self.name, "configure", e)
            logger.error(f"{error} ({schema.name}/{document.id})")
            return [], DomainEvent.cascade_failed(self.name, schema.name, document.id, [error])

    async def _propagate(self, task: Optional[asyncio.Task]) -> Optional[asyncio.Task]:
        if task is not None and self.connection.executor.options.await_propagation:
            await task
        return task

    # Find
    async def load(self, document_class: Type[DocumentType], raw: RawDocument) -> DocumentType:
        """Instantiate a stored document: not new, baseline captured, after_find run"""
        document = document_class.from_document(raw)
        document.set_is_new(False)

        if self._schema(document_class).capabilities.after_find:
            await invoke(document.after_find, self)

        document.get_diff_tracker().reset()
        return document

    async def find_by_id(self, document_id: Any,
                         document_class: Optional[Type[DocumentType]] = None) -> DocumentType:
        """
        Raises:
            DocumentNotFoundError: If no document has this id
        """
        return await self.find_one({"_id": document_id}, document_class)

    async def find_one(self, query: Filter,
                       document_class: Optional[Type[DocumentType]] = None) -> DocumentType:
        """
        Raises:
            DocumentNotFoundError: If nothing matched
        """
        resolved = self._resolve_class(document_class)
        raw = await self.store.find_one(self.name, query)
        if raw is None:
            raise DocumentNotFoundError()
        return await self.load(resolved, raw)

    def find(self, query: Optional[Filter] = None,
             document_class: Optional[Type[DocumentType]] = None) -> ResultSet[DocumentType]:
        return ResultSet(self, self._resolve_class(document_class), query)

    async def count(self, query: Optional[Filter] = None) -> int:
        return await self.store.count(self.name, query or {})


__all__ = ["Collection"]
