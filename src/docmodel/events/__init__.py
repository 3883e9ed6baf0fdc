"""
Events - Document and Cascade Notifications
"""

from .domain_events import DomainEvent, EventType
from .bus import EventBus, EventHandler, InProcessEventBus

__all__ = ["DomainEvent", "EventType", "EventBus", "EventHandler", "InProcessEventBus"]
