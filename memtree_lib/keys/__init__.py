"""Path resolution and flatten/expand helpers."""

from .resolver import EntryKind, PathResolver
from .tree import MISSING, ValueKind, expand, extract, flatten, merge, value_kind

__all__ = [
    "EntryKind",
    "PathResolver",
    "MISSING",
    "ValueKind",
    "expand",
    "extract",
    "flatten",
    "merge",
    "value_kind",
]
