"""
Connection - Wiring Store, Registry, Events and Cascades

🔌 Entry point of the library:

    config = ApplicationConfig.for_environment(Environment.TESTING)
    async with Connection(config) as connection:
        connection.register(Parent, Child)
        child = Child(name="Foo", parent_id=parent.id)
        await connection.save(child)
        await connection.executor.join()
"""

from typing import Any, Dict, Optional, Set, Tuple, Type, Union
import logging

from .cascade.executor import CascadeExecutor
from .collection import Collection
from .config import ApplicationConfig, PersistenceConfig
from .entities.document import Document, DocumentType
from .entities.registry import SchemaRegistry
from .events import DomainEvent, EventBus, InProcessEventBus
from .persistence.backends.memory import MemoryDocumentStore
from .persistence.repositories.interface import DocumentStore, Filter
from .result_set import ResultSet

logger = logging.getLogger(__name__)


def create_store(persistence: PersistenceConfig) -> DocumentStore:
    """Build the document store selected by the persistence config"""
    backend = persistence.backend.lower()
    if backend == "memory":
        return MemoryDocumentStore()
    if backend == "mongo":
        from .persistence.backends.mongo import MongoDocumentStore
        return MongoDocumentStore(
            url=persistence.url,
            database=persistence.database,
            timeout_ms=persistence.timeout_ms,
        )
    raise ValueError(f"Unknown persistence backend: {persistence.backend}")


class Connection:
    """
    Owns the store, the schema registry, the event bus and the cascade executor.

    Args:
        config: Application configuration (defaults apply when omitted)
        store: Pre-built store; otherwise created from `config.persistence`
        registry: Shared registry; a private one is created when omitted
        bus: Event bus; an InProcessEventBus is created when omitted
    """

    def __init__(self,
                 config: Optional[ApplicationConfig] = None,
                 store: Optional[DocumentStore] = None,
                 registry: Optional[SchemaRegistry] = None,
                 bus: Optional[EventBus] = None):
        self.config = config or ApplicationConfig()
        self.store = store or create_store(self.config.persistence)
        self.registry = registry or SchemaRegistry()
        self.bus = bus or InProcessEventBus()
        self.executor = CascadeExecutor(
            store=self.store,
            registry=self.registry,
            collection_factory=self.collection_for,
            bus=self.bus,
            options=self.config.cascade,
        )
        self._collections: Dict[Tuple[str, Optional[Type[Document]]], Collection] = {}
        self._indexed: Set[str] = set()

    # Lifecycle
    async def connect(self) -> "Connection":
        await self.store.initialize()
        logger.info(f"Connection ready ({self.store.__class__.__name__})")
        return self

    async def close(self) -> None:
        """Wait for pending cascades, then release the store"""
        await self.executor.join()
        await self.store.shutdown()
        self._indexed.clear()
        logger.info("Connection closed")

    async def __aenter__(self) -> "Connection":
        return await self.connect()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Registry / collections
    def register(self, *document_classes: Type[Document]) -> "Connection":
        self.registry.register(*document_classes)
        return self

    def collection(self, name: str, document_class: Optional[Type[Document]] = None) -> Collection:
        key = (name, document_class)
        if key not in self._collections:
            self._collections[key] = Collection(self, name, document_class)
        return self._collections[key]

    def collection_for(self, document: Union[Document, Type[Document]]) -> Collection:
        """Collection a document (or document type) is stored in"""
        document_class = document if isinstance(document, type) else type(document)
        schema = self.registry.ensure_registered(document_class)
        return self.collection(schema.collection, document_class)

    def mark_indexed(self, collection: str) -> bool:
        """True the first time a collection is seen (indexes still to create)"""
        if collection in self._indexed:
            return False
        self._indexed.add(collection)
        return True

    async def publish(self, event: DomainEvent) -> None:
        await self.bus.publish(event)

    # Helpers
    async def save(self, document: Document):
        return await self.collection_for(document).save(document)

    async def delete_document(self, document: Document):
        return await self.collection_for(document).delete_document(document)

    async def find_by_id(self, document_class: Type[DocumentType], document_id: Any) -> DocumentType:
        return await self.collection_for(document_class).find_by_id(document_id)

    async def find_one(self, document_class: Type[DocumentType], query: Filter) -> DocumentType:
        return await self.collection_for(document_class).find_one(query)

    def find(self, document_class: Type[DocumentType],
             query: Optional[Filter] = None) -> ResultSet[DocumentType]:
        return self.collection_for(document_class).find(query)


__all__ = ["Connection", "create_store"]
