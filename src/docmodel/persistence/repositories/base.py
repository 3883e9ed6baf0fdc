"""
Base Document Store - Common Store Functionality

🏗️ Shared Store Foundation:
Lifecycle, per-operation timing and logging shared by every storage backend.
Concrete stores implement the data access and route each public call
through `_measure` so failures and latencies are counted in one place.
"""

from abc import ABC
from typing import Any, Awaitable, Dict, TypeVar
from dataclasses import dataclass, field
import logging
import time

from ...errors import StorageError
from .interface import DocumentStore, RawDocument

ResultType = TypeVar("ResultType")


@dataclass
class OperationStats:
    """Counters of one store operation (save_document, find, ...)"""
    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0

    @property
    def average_ms(self) -> float:
        succeeded = self.calls - self.failures
        return self.total_ms / succeeded if succeeded else 0.0


@dataclass
class StoreMetrics:
    """Metrics collected by store implementations"""
    documents_count: int = 0
    started_at: float = field(default_factory=time.monotonic)
    by_operation: Dict[str, OperationStats] = field(default_factory=dict)

    def stats(self, operation: str) -> OperationStats:
        return self.by_operation.setdefault(operation, OperationStats())

    @property
    def total_operations(self) -> int:
        return sum(s.calls for s in self.by_operation.values())

    @property
    def failed_operations(self) -> int:
        return sum(s.failures for s in self.by_operation.values())

    def to_dict(self) -> Dict[str, Any]:
        total = self.total_operations
        failed = self.failed_operations
        return {
            "total_operations": total,
            "successful_operations": total - failed,
            "failed_operations": failed,
            "documents_count": self.documents_count,
            "uptime_seconds": time.monotonic() - self.started_at,
            "operations": {name: s.calls for name, s in self.by_operation.items()},
            "average_ms": {name: s.average_ms for name, s in self.by_operation.items()},
        }


class BaseDocumentStore(DocumentStore, ABC):
    """
    Base class of the bundled stores.

    Subclasses override `_do_initialize` / `_do_shutdown` for connection
    handling; `initialize` and `shutdown` are idempotent.
    """

    def __init__(self, **settings):
        self.settings = settings
        self.metrics = StoreMetrics()
        self._ready = False
        self._logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @property
    def is_initialized(self) -> bool:
        return self._ready

    async def initialize(self):
        if self._ready:
            return
        await self._do_initialize()
        self._ready = True
        self._logger.info(f"{self.__class__.__name__} ready")

    async def shutdown(self):
        if not self._ready:
            return
        await self._do_shutdown()
        self._ready = False
        self._logger.info(f"{self.__class__.__name__} closed")

    async def _do_initialize(self):
        pass

    async def _do_shutdown(self):
        pass

    async def get_metrics(self) -> Dict[str, Any]:
        return self.metrics.to_dict()

    async def _measure(self, operation: str, awaitable: Awaitable[ResultType]) -> ResultType:
        """Await one store operation, counting its latency or its failure"""
        stats = self.metrics.stats(operation)
        stats.calls += 1
        started = time.perf_counter()
        try:
            result = await awaitable
        except Exception as e:
            stats.failures += 1
            self._logger.error(f"{operation} failed: {e}")
            raise
        stats.total_ms += (time.perf_counter() - started) * 1000
        return result

    @staticmethod
    def _document_id(document: RawDocument) -> str:
        document_id = document.get("_id")
        if document_id is None or document_id == "":
            raise StorageError("Cannot save a document without an _id")
        return document_id


__all__ = ["BaseDocumentStore", "StoreMetrics", "OperationStats"]
