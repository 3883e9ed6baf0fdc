"""
Storage backends
"""

from .memory import MemoryDocumentStore

__all__ = ["MemoryDocumentStore"]
