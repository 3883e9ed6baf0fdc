"""
Cascade - Propagating Denormalized Copies Between Collections
"""

from .config import CascadeConfig, RelationArity
from .properties import build_nested_map, extract_value, zero_nested_map
from .executor import CascadeExecutor, CascadeOutcome, collect_cascade

__all__ = [
    "CascadeConfig", "RelationArity",
    "build_nested_map", "extract_value", "zero_nested_map",
    "CascadeExecutor", "CascadeOutcome", "collect_cascade",
]
