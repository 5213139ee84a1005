"""memtree exception hierarchy.

Not-found and metadata-disabled are results, not errors: `EntryStore.read`
returns ``None`` and `EntryStore.read_meta` returns ``False`` for those.
"""

from __future__ import annotations


class MemtreeError(Exception):
    """Base exception for all memtree failures."""


class ConfigError(MemtreeError):
    """Raised for invalid cache configuration."""


class InvalidValue(MemtreeError, ValueError):
    """Raised when a path or value cannot be stored (cycles, bad keys, None)."""


class BackendUnavailable(MemtreeError):
    """Raised when the key-value backend fails at the transport or storage level."""


class IndexConflict(BackendUnavailable):
    """Raised when a compare-and-swap index update keeps losing to other writers."""
