"""
Cascade Executor - Propagating Denormalized Copies

⚡ Save / Delete Propagation:
After a document is written (or removed), the executor runs every
CascadeConfig it produced, copying the configured properties into the
related documents of other collections:

1. Prior relation: targets matching `old_query` lose their copy
   (ToOne: zero-valued shape, ToMany: array element removed by id)
2. Current relation: targets matching `query` receive the copy
   (ToOne: `$set`, ToMany: in-place upsert by id); on delete they lose it
3. Nested: the touched targets are loaded and their own cascades run
   against their new state, up to `max_depth` hops

Each configuration runs independently of its siblings, and inside one
configuration a failed prior removal does not skip the write. Failures are logged,
collected and published as CASCADE_FAILED; they never reach the caller of
save / delete. Propagation runs in a background asyncio.Task; `join()` waits
for every pending one.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Set, Type
import asyncio
import logging

from ..config import CascadeConfigOptions
from ..entities.capabilities import CascadingDocument, invoke
from ..entities.document import Document
from ..errors import PropagationWriteError
from ..events import DomainEvent, EventBus
from ..persistence.repositories.interface import DocumentStore, Filter
from .config import CascadeConfig, RelationArity
from .properties import build_nested_map, extract_value, zero_nested_map

if TYPE_CHECKING:
    from ..collection import Collection
    from ..entities.registry import SchemaRegistry

logger = logging.getLogger(__name__)

CollectionFactory = Callable[[Type[Document]], "Collection"]


@dataclass
class CascadeOutcome:
    """Result of one propagation run"""
    collection: str
    document_type: str
    document_id: Optional[str]
    deleting: bool = False
    configurations: int = 0
    errors: List[PropagationWriteError] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


async def collect_cascade(document: Document, collection: "Collection") -> List[CascadeConfig]:
    """Configurations produced by the document's get_cascade hook (sync or async)"""
    if not isinstance(document, CascadingDocument):
        return []
    return list(await invoke(document.get_cascade, collection) or [])


class CascadeExecutor:
    """
    Runs cascade configurations against a DocumentStore.

    Args:
        store: Storage the targets live in
        registry: Registry used to load nested targets by type name
        collection_factory: Returns the Collection of a document type
        bus: Optional event bus receiving CASCADE_* events
        options: Cascade settings (enabled, timeout, depth)
    """

    def __init__(self,
                 store: DocumentStore,
                 registry: "SchemaRegistry",
                 collection_factory: CollectionFactory,
                 bus: Optional[EventBus] = None,
                 options: Optional[CascadeConfigOptions] = None):
        self.store = store
        self.registry = registry
        self.collection_factory = collection_factory
        self.bus = bus
        self.options = options or CascadeConfigOptions()
        self._pending: Set[asyncio.Task] = set()

    # Dispatch
    def dispatch_save(self, document: Document, collection: str,
                      configs: List[CascadeConfig]) -> Optional[asyncio.Task]:
        """Schedule propagation of a saved document; returns the task or None"""
        return self._dispatch(document, collection, configs, deleting=False)

    def dispatch_delete(self, document: Document, collection: str,
                        configs: List[CascadeConfig]) -> Optional[asyncio.Task]:
        """Schedule removal of a deleted document's copies; returns the task or None"""
        return self._dispatch(document, collection, configs, deleting=True)

    def _dispatch(self, document: Document, collection: str,
                  configs: List[CascadeConfig], deleting: bool) -> Optional[asyncio.Task]:
        if not self.options.enabled:
            logger.debug(f"Cascades disabled, skipping {len(configs)} configuration(s) of {collection}")
            return None
        if not configs:
            return None

        task = asyncio.get_running_loop().create_task(
            self.run(document, collection, configs, deleting=deleting),
            name=f"cascade:{collection}:{document.id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def join(self) -> None:
        """Wait until every dispatched propagation (and what it spawned) has finished"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # Execution
    async def run(self, document: Document, collection: str,
                  configs: List[CascadeConfig], deleting: bool = False) -> CascadeOutcome:
        """Execute configurations for one save/delete event and publish the outcome"""
        outcome = CascadeOutcome(
            collection=collection,
            document_type=document.type_name(),
            document_id=document.id,
            deleting=deleting,
            configurations=len(configs),
        )
        action = "delete" if deleting else "save"
        logger.debug(f"Running {len(configs)} cascade(s) for {action} of {collection}/{document.id}")

        outcome.errors = await self._execute(configs, document, depth=0, deleting=deleting)

        if outcome.errors:
            logger.warning(
                f"Cascade for {action} of {collection}/{document.id} finished with "
                f"{len(outcome.errors)} failure(s)"
            )
            await self._publish(DomainEvent.cascade_failed(
                collection, outcome.document_type, document.id, outcome.errors
            ))
        else:
            await self._publish(DomainEvent.cascade_completed(
                collection, outcome.document_type, document.id, len(configs)
            ))
        return outcome

    async def _execute(self, configs: List[CascadeConfig], source: Document,
                       depth: int, deleting: bool) -> List[PropagationWriteError]:
        results = await asyncio.gather(
            *(self._apply(config, source, depth, deleting) for config in configs),
            return_exceptions=True,
        )

        errors: List[PropagationWriteError] = []
        for config, result in zip(configs, results):
            if isinstance(result, PropagationWriteError):
                logger.error(f"{result} ({config.describe()} from {source.type_name()}/{source.id})")
                errors.append(result)
            elif isinstance(result, Exception):
                error = PropagationWriteError(config.collection, "cascade", result)
                logger.error(f"{error} ({config.describe()} from {source.type_name()}/{source.id})")
                errors.append(error)
            elif isinstance(result, BaseException):
                raise result
            else:
                errors.extend(result)
        return errors

    async def _apply(self, config: CascadeConfig, source: Document, depth: int,
                     deleting: bool) -> List[PropagationWriteError]:
        if not config.query:
            logger.warning(f"Refusing cascade {config.describe()} without a match filter")
            return []

        data = config.data if config.data is not None else source
        copy = build_nested_map(config.properties, data)
        identity = extract_value(data, config.identity_key)

        # Every step is attempted even when an earlier one failed.
        errors: List[PropagationWriteError] = []
        if config.has_prior_relation:
            await self._attempt(errors, config, source, self._remove(config, config.old_query, copy, identity))

        if deleting:
            await self._attempt(errors, config, source, self._remove(config, config.query, copy, identity))
        else:
            await self._attempt(errors, config, source, self._write(config, config.query, copy, identity))

        if not config.nest:
            return errors

        errors.extend(await self._propagate_nested(config, config.query, depth))
        if config.has_prior_relation:
            errors.extend(await self._propagate_nested(config, config.old_query, depth))
        return errors

    async def _write(self, config: CascadeConfig, query: Filter, copy: dict, identity: Any) -> None:
        if config.rel_type is RelationArity.MANY:
            self._require_identity(config, identity)
            await self._guard(config, "write", self.store.upsert_array_element_by_id(
                config.collection, query, config.through_prop, identity, copy, config.identity_key
            ))
        else:
            update = {config.through_prop: copy} if config.through_prop else copy
            await self._guard(config, "write", self.store.update_where(
                config.collection, query, {"$set": update}
            ))

    async def _remove(self, config: CascadeConfig, query: Filter, copy: dict, identity: Any) -> None:
        if config.rel_type is RelationArity.MANY:
            self._require_identity(config, identity)
            await self._guard(config, "remove", self.store.remove_array_element_by_id(
                config.collection, query, config.through_prop, identity, config.identity_key
            ))
        else:
            cleared = zero_nested_map(copy)
            update = {config.through_prop: cleared} if config.through_prop else cleared
            await self._guard(config, "remove", self.store.update_where(
                config.collection, query, {"$set": update}
            ))

    async def _propagate_nested(self, config: CascadeConfig, query: Filter,
                                depth: int) -> List[PropagationWriteError]:
        if depth + 1 > self.options.max_depth:
            logger.warning(
                f"Nested cascade into {config.collection} stopped at depth {depth} "
                f"(max_depth={self.options.max_depth})"
            )
            return []

        schema = self.registry.schema_for(config.nested_type)
        if not schema.capabilities.cascade:
            return []

        collection = self.collection_factory(schema.document_class)
        targets = await self._guard(config, "nest", collection.find(query).all())

        errors: List[PropagationWriteError] = []
        for target in targets:
            configs = await collect_cascade(target, collection)
            errors.extend(await self._execute(configs, target, depth + 1, deleting=False))
        return errors

    async def _attempt(self, errors: List[PropagationWriteError], config: CascadeConfig,
                       source: Document, step: Awaitable[None]) -> None:
        """Await one write step, recording (not raising) its failure"""
        try:
            await step
        except PropagationWriteError as e:
            logger.error(f"{e} ({config.describe()} from {source.type_name()}/{source.id})")
            errors.append(e)

    async def _guard(self, config: CascadeConfig, step: str, awaitable: Awaitable[Any]) -> Any:
        """Run one storage call under the operation timeout, wrapping failures"""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.options.operation_timeout)
        except Exception as e:
            raise PropagationWriteError(config.collection, step, e) from e

    @staticmethod
    def _require_identity(config: CascadeConfig, identity: Any) -> None:
        if identity is None:
            raise PropagationWriteError(
                config.collection, "identity",
                ValueError(f"No '{config.identity_key}' value to key the array element by"),
            )

    async def _publish(self, event: DomainEvent) -> None:
        if self.bus is not None:
            await self.bus.publish(event)


__all__ = ["CascadeExecutor", "CascadeOutcome", "collect_cascade", "CollectionFactory"]
