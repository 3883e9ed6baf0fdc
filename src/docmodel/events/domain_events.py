"""
Domain Events - What Happened to a Document

Events are published after a document write succeeds and after each cascade
propagation finishes, so observers can follow eventual consistency without
polling the target collections.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, List
from datetime import datetime
from enum import Enum
import uuid


class EventType(Enum):
    """Types of domain events"""
    DOCUMENT_SAVED = "document.saved"
    DOCUMENT_DELETED = "document.deleted"
    CASCADE_COMPLETED = "cascade.completed"
    CASCADE_FAILED = "cascade.failed"


@dataclass
class DomainEvent:
    """
    Record of something that happened to a document.

    `payload` carries event specific details: the changed fields of a save,
    the failed cascade steps, and so on.
    """
    event_type: EventType
    collection: str = ""
    document_type: str = ""
    document_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)
    correlation_id: Optional[str] = None

    @classmethod
    def document_saved(
        cls,
        collection: str,
        document_type: str,
        document_id: Optional[str],
        is_new: bool,
        changed_fields: List[str],
        **kwargs
    ) -> 'DomainEvent':
        """Create a document saved event"""
        return cls(
            event_type=EventType.DOCUMENT_SAVED,
            collection=collection,
            document_type=document_type,
            document_id=document_id,
            payload={"is_new": is_new, "changed_fields": list(changed_fields)},
            **kwargs
        )

    @classmethod
    def document_deleted(
        cls,
        collection: str,
        document_type: str,
        document_id: Optional[str],
        **kwargs
    ) -> 'DomainEvent':
        """Create a document deleted event"""
        return cls(
            event_type=EventType.DOCUMENT_DELETED,
            collection=collection,
            document_type=document_type,
            document_id=document_id,
            **kwargs
        )

    @classmethod
    def cascade_completed(
        cls,
        collection: str,
        document_type: str,
        document_id: Optional[str],
        configurations: int,
        **kwargs
    ) -> 'DomainEvent':
        """Create a cascade completed event"""
        return cls(
            event_type=EventType.CASCADE_COMPLETED,
            collection=collection,
            document_type=document_type,
            document_id=document_id,
            payload={"configurations": configurations},
            **kwargs
        )

    @classmethod
    def cascade_failed(
        cls,
        collection: str,
        document_type: str,
        document_id: Optional[str],
        errors: List[BaseException],
        **kwargs
    ) -> 'DomainEvent':
        """Create a cascade failed event"""
        return cls(
            event_type=EventType.CASCADE_FAILED,
            collection=collection,
            document_type=document_type,
            document_id=document_id,
            payload={"errors": [str(error) for error in errors]},
            **kwargs
        )

    def get_document_key(self) -> str:
        """Key identifying the document this event relates to"""
        return f"{self.document_type}:{self.document_id}" if self.document_id else self.document_type

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization"""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "collection": self.collection,
            "document_type": self.document_type,
            "document_id": self.document_id,
            "payload": self.payload,
            "correlation_id": self.correlation_id,
        }


__all__ = ["EventType", "DomainEvent"]
